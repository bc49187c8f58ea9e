from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from bson import ObjectId
from pydantic import PlainSerializer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(ObjectId())


# Decimal in Python, plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]
