"""Venue entities and their JSON shape.

The JSON keys are camelCase because the same blob is shared with the remote
state store, which other terminals read and write.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..core.money import money_to_json, parse_money, to_decimal, to_money

TABLE_AVAILABLE = "available"
TABLE_RUNNING = "running"
TABLE_CLOSED = "closed"

SESSION_OPEN = "open"
SESSION_FIXED = "fixed"
SESSION_TYPES = (SESSION_OPEN, SESSION_FIXED)

RECORD_COMPLETED = "completed"
RECORD_VOIDED = "voided"

ORDER_COMPLETED = "completed"
ORDER_VOIDED = "voided"

DEFAULT_TABLE_WIDTH = 176
DEFAULT_TABLE_HEIGHT = 140


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def dt_to_json(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat()


def dt_from_json(raw: Any) -> Optional[datetime]:
    """Parse ISO strings (with or without ``Z``) and epoch milliseconds.

    Aware values are converted to naive local time so calendar-day grouping
    matches the wall clock of the venue.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw / 1000)
    else:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _opt_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None or raw == "":
        return None
    return to_decimal(raw)


def _decimal_to_json(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


@dataclass(slots=True)
class PriceCategory:
    id: str
    name: str
    hourly_rate: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "hourlyRate": float(self.hourly_rate)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceCategory":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            hourly_rate=to_decimal(data.get("hourlyRate", 0)),
        )


@dataclass(slots=True)
class TableSession:
    """In-progress session embedded in a table."""

    id: str
    table_id: str
    table_name: str
    start_time: datetime
    session_type: str
    hourly_rate: Decimal
    fixed_duration: Optional[Decimal] = None
    ended_elapsed_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "tableId": self.table_id,
            "tableName": self.table_name,
            "startTime": dt_to_json(self.start_time),
            "sessionType": self.session_type,
            "hourlyRate": float(self.hourly_rate),
        }
        if self.fixed_duration is not None:
            data["fixedDuration"] = float(self.fixed_duration)
        if self.ended_elapsed_ms is not None:
            data["endedElapsedMs"] = self.ended_elapsed_ms
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableSession":
        ended = data.get("endedElapsedMs")
        return cls(
            id=str(data["id"]),
            table_id=str(data.get("tableId", "")),
            table_name=str(data.get("tableName", "")),
            start_time=dt_from_json(data.get("startTime")) or datetime.now(),
            session_type=data.get("sessionType") or SESSION_OPEN,
            hourly_rate=to_decimal(data.get("hourlyRate", 0)),
            fixed_duration=_opt_decimal(data.get("fixedDuration")),
            ended_elapsed_ms=None if ended is None else int(ended),
        )


@dataclass(slots=True)
class BilliardTable:
    id: str
    name: str
    status: str = TABLE_AVAILABLE
    x: int = 50
    y: int = 50
    width: int = DEFAULT_TABLE_WIDTH
    height: int = DEFAULT_TABLE_HEIGHT
    price_category_id: Optional[str] = None
    current_session: Optional[TableSession] = None

    @property
    def is_available(self) -> bool:
        return self.status == TABLE_AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "position": {"x": self.x, "y": self.y},
            "size": {"width": self.width, "height": self.height},
        }
        if self.price_category_id:
            data["priceCategoryId"] = self.price_category_id
        if self.current_session is not None:
            data["currentSession"] = self.current_session.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BilliardTable":
        position = data.get("position") or {}
        size = data.get("size") or {}
        raw_session = data.get("currentSession")
        session = TableSession.from_dict(raw_session) if raw_session else None
        # the stored status is ignored: a snapshot from another terminal may
        # disagree with itself, and the session decides occupancy and whether
        # the clock is frozen
        if session is None:
            status = TABLE_AVAILABLE
        else:
            status = TABLE_CLOSED if session.ended_elapsed_ms is not None else TABLE_RUNNING
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            status=status,
            x=int(position.get("x", 50)),
            y=int(position.get("y", 50)),
            width=int(size.get("width", DEFAULT_TABLE_WIDTH)),
            height=int(size.get("height", DEFAULT_TABLE_HEIGHT)),
            price_category_id=data.get("priceCategoryId") or None,
            current_session=session,
        )


@dataclass(slots=True)
class SessionRecord:
    """Archived, priced session kept in the ledger."""

    id: str
    table_id: str
    table_name: str
    start_time: datetime
    end_time: Optional[datetime]
    session_type: str
    hourly_rate: Decimal
    total_amount: Decimal
    fixed_duration: Optional[Decimal] = None
    ended_elapsed_ms: Optional[int] = None
    status: str = RECORD_COMPLETED

    @property
    def is_voided(self) -> bool:
        return self.status == RECORD_VOIDED

    @property
    def duration_ms(self) -> int:
        if self.end_time is None:
            return 0
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "tableId": self.table_id,
            "tableName": self.table_name,
            "startTime": dt_to_json(self.start_time),
            "endTime": dt_to_json(self.end_time),
            "sessionType": self.session_type,
            "hourlyRate": float(self.hourly_rate),
            "totalAmount": money_to_json(self.total_amount),
            "status": self.status,
        }
        if self.fixed_duration is not None:
            data["fixedDuration"] = float(self.fixed_duration)
        if self.ended_elapsed_ms is not None:
            data["endedElapsedMs"] = self.ended_elapsed_ms
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        start = dt_from_json(data.get("startTime")) or datetime.now()
        end = dt_from_json(data.get("endTime"))
        ended = data.get("endedElapsedMs")
        return cls(
            id=str(data["id"]),
            table_id=str(data.get("tableId", "")),
            table_name=str(data.get("tableName", "")),
            start_time=start,
            end_time=end,
            session_type=data.get("sessionType") or SESSION_OPEN,
            hourly_rate=to_decimal(data.get("hourlyRate", 0)),
            total_amount=parse_money(data.get("totalAmount", 0)),
            fixed_duration=_opt_decimal(data.get("fixedDuration")),
            ended_elapsed_ms=None if ended is None else int(ended),
            status=data.get("status") or RECORD_COMPLETED,
        )


@dataclass(slots=True)
class RetailItem:
    id: str
    name: str
    price: Decimal
    category: str
    stock: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": money_to_json(self.price),
            "category": self.category,
            "stock": self.stock,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetailItem":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            price=parse_money(data.get("price", 0)),
            category=str(data.get("category", "")),
            stock=max(0, int(data.get("stock", 0))),
        )


@dataclass(slots=True)
class RetailSale:
    id: str
    item_id: str
    item_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    timestamp: datetime
    order_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "itemId": self.item_id,
            "itemName": self.item_name,
            "quantity": self.quantity,
            "unitPrice": money_to_json(self.unit_price),
            "totalPrice": money_to_json(self.total_price),
            "timestamp": dt_to_json(self.timestamp),
        }
        if self.order_id:
            data["orderId"] = self.order_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetailSale":
        return cls(
            id=str(data["id"]),
            item_id=str(data.get("itemId", "")),
            item_name=str(data.get("itemName", "")),
            quantity=int(data.get("quantity", 0)),
            unit_price=parse_money(data.get("unitPrice", 0)),
            total_price=parse_money(data.get("totalPrice", 0)),
            timestamp=dt_from_json(data.get("timestamp")) or datetime.now(),
            order_id=data.get("orderId") or None,
        )


@dataclass(slots=True)
class OrderItem:
    item_id: str
    item_name: str
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "itemId": self.item_id,
            "itemName": self.item_name,
            "quantity": self.quantity,
            "unitPrice": money_to_json(self.unit_price),
            "totalPrice": money_to_json(self.total_price),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            item_id=str(data.get("itemId", "")),
            item_name=str(data.get("itemName", "")),
            quantity=int(data.get("quantity", 0)),
            unit_price=parse_money(data.get("unitPrice", 0)),
        )


@dataclass(slots=True)
class Order:
    id: str
    items: List[OrderItem] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    notes: str = ""
    status: str = ORDER_COMPLETED

    @property
    def total_price(self) -> Decimal:
        return to_money(sum((i.total_price for i in self.items), Decimal("0")))

    @property
    def is_voided(self) -> bool:
        return self.status == ORDER_VOIDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "items": [i.to_dict() for i in self.items],
            "totalPrice": money_to_json(self.total_price),
            "timestamp": dt_to_json(self.timestamp),
            "notes": self.notes,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        return cls(
            id=str(data["id"]),
            items=[OrderItem.from_dict(i) for i in data.get("items") or []],
            timestamp=dt_from_json(data.get("timestamp")) or datetime.now(),
            notes=data.get("notes") or "",
            status=data.get("status") or ORDER_COMPLETED,
        )
