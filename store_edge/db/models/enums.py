import enum

from sqlalchemy import Enum


class SyncStatus(str, enum.Enum):
    SYNCED = "synced"
    PENDING = "pending"
    ERROR = "error"


class MovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"


class QueueOperation(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


def enum_column(enum_cls, name):
    # store the lowercase values, not the member names
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])
