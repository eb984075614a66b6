"""
SQLite database layer for LogiTrack.
Stores inventory items, orders and user accounts.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import (
    create_engine, Column, Integer, String, DateTime, ForeignKey, event, func, select
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, selectinload, sessionmaker, Session
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class InventoryItem(Base):
    __tablename__ = "inventory_items"

    item_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    location = Column(String(100), nullable=False)

    # Optional owning order (one order, many items)
    order_id = Column(
        Integer, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=True, index=True,
    )
    order = relationship("Order", back_populates="items")


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column(String(100), nullable=False)
    date_placed = Column(DateTime, nullable=False, default=_utcnow)

    # Items belong to their order and are deleted with it.
    items = relationship("InventoryItem", back_populates="order", cascade="all, delete-orphan")

    def summary(self) -> str:
        return (
            f"Order #{self.order_id} for {self.customer_name} | "
            f"Items {len(self.items or [])} | Placed {self.date_placed:%Y-%m-%d}"
        )


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(256), nullable=False, unique=True, index=True)
    password_hash = Column(String(256), nullable=False)
    roles = Column(String(128), nullable=False, default="User")  # comma-separated
    created_at = Column(DateTime, default=_utcnow)
    last_login_at = Column(DateTime, nullable=True)

    @property
    def role_list(self) -> List[str]:
        return [r for r in (self.roles or "").split(",") if r]


# ---------------------------------------------------------------------------
# Engine / session
# ---------------------------------------------------------------------------

def make_engine(url: str) -> Engine:
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=engine)


# ---------------------------------------------------------------------------
# Inventory queries
# ---------------------------------------------------------------------------

def list_inventory(db: Session, skip: int, take: int) -> List[InventoryItem]:
    stmt = select(InventoryItem).order_by(InventoryItem.item_id).offset(skip).limit(take)
    return list(db.scalars(stmt))


def count_inventory(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(InventoryItem)) or 0


def search_inventory(
    db: Session,
    name: Optional[str] = None,
    min_quantity: Optional[int] = None,
    take: int = 50,
) -> List[InventoryItem]:
    stmt = select(InventoryItem)
    if name and name.strip():
        stmt = stmt.where(InventoryItem.name.contains(name))
    if min_quantity is not None and min_quantity > 0:
        stmt = stmt.where(InventoryItem.quantity >= min_quantity)
    stmt = stmt.order_by(InventoryItem.quantity.desc()).limit(take)
    return list(db.scalars(stmt))


def inventory_summary(db: Session, take: int) -> List[dict]:
    """Lightweight projection: only the columns the summary view needs."""
    stmt = (
        select(InventoryItem.item_id, InventoryItem.name, InventoryItem.quantity, InventoryItem.location)
        .order_by(InventoryItem.item_id)
        .limit(take)
    )
    return [dict(row._mapping) for row in db.execute(stmt)]


def get_inventory_item(db: Session, item_id: int) -> Optional[InventoryItem]:
    return db.get(InventoryItem, item_id)


def create_inventory_item(db: Session, name: str, quantity: int, location: str) -> InventoryItem:
    item = InventoryItem(name=name, quantity=quantity, location=location)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def update_inventory_item(
    db: Session, item_id: int, name: str, quantity: int, location: str,
) -> Optional[InventoryItem]:
    item = db.get(InventoryItem, item_id)
    if item is None:
        return None
    item.name = name
    item.quantity = quantity
    item.location = location
    db.commit()
    db.refresh(item)
    return item


def delete_inventory_item(db: Session, item_id: int) -> Optional[InventoryItem]:
    """Delete an item; returns the detached row, or None when it does not exist."""
    item = db.get(InventoryItem, item_id)
    if item is None:
        return None
    db.delete(item)
    db.commit()
    return item


# ---------------------------------------------------------------------------
# Order queries
# ---------------------------------------------------------------------------

def list_orders(db: Session, skip: int, take: int) -> List[Order]:
    stmt = (
        select(Order)
        .options(selectinload(Order.items))
        .order_by(Order.order_id)
        .offset(skip)
        .limit(take)
    )
    return list(db.scalars(stmt))


def count_orders(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(Order)) or 0


def get_order(db: Session, order_id: int) -> Optional[Order]:
    stmt = select(Order).options(selectinload(Order.items)).where(Order.order_id == order_id)
    return db.scalars(stmt).first()


def create_order(
    db: Session,
    customer_name: str,
    date_placed: datetime,
    items: Iterable[dict] = (),
) -> Order:
    order = Order(customer_name=customer_name, date_placed=date_placed)
    for fields in items:
        order.items.append(InventoryItem(**fields))
    db.add(order)
    db.commit()
    return get_order(db, order.order_id)


def add_items_to_order(db: Session, order_id: int, items: Iterable[dict]) -> Optional[Order]:
    """Attach new items by foreign key without loading the order's item list."""
    if db.get(Order, order_id) is None:
        return None
    db.add_all(InventoryItem(order_id=order_id, **fields) for fields in items)
    db.commit()
    db.expire_all()
    return get_order(db, order_id)


def delete_order(db: Session, order_id: int) -> Optional[List[int]]:
    """Delete an order together with its items.

    Returns the ids of the deleted items, or None when the order does not exist.
    """
    order = get_order(db, order_id)
    if order is None:
        return None
    item_ids = [item.item_id for item in order.items]
    db.delete(order)
    db.commit()
    return item_ids


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    stmt = select(User).where(func.lower(User.email) == email.lower())
    return db.scalars(stmt).first()


def create_user(db: Session, email: str, password_hash: str, roles: Iterable[str]) -> User:
    user = User(email=email, password_hash=password_hash, roles=",".join(roles))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def touch_last_login(db: Session, user: User) -> None:
    user.last_login_at = _utcnow()
    db.commit()
