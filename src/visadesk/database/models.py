"""SQLAlchemy models for visadesk database."""

from datetime import datetime, UTC
from typing import Any
from sqlalchemy import (
    Engine,
    event,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    JSON,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Client(Base):
    """Client model."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    remark = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    passports = relationship("Passport", back_populates="client")
    orders = relationship("Order", back_populates="client")
    bills = relationship("Bill", back_populates="client")


class Passport(Base):
    """Passport model."""

    __tablename__ = "passports"

    id = Column(Integer, primary_key=True)
    passport_no = Column(String, unique=True, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    country = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    gender = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    in_stock = Column(Boolean, default=True, nullable=False)
    is_following = Column(Boolean, default=False, nullable=False)
    status = Column(String, nullable=True)
    remark = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="passports")


class Product(Base):
    """Product or service model."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False)
    supplier_id = Column(Integer, nullable=True)
    status = Column(String, default="active", nullable=False)
    remark = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)


class Order(Base):
    """Order model."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    passport_no = Column(String, nullable=False)
    customer_name = Column(String, nullable=False)
    passport_number = Column(String, nullable=False)
    country = Column(String, nullable=False)
    total_amount = Column(Numeric(10, 2), default=0, nullable=False)
    total_cost = Column(Numeric(10, 2), default=0, nullable=False)
    order_status = Column(String, default="pending", nullable=False)
    bill_status = Column(String, default="unbilled", nullable=False)
    remark = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


class OrderItem(Base):
    """Order line model."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String, default="pending", nullable=False)
    remark = Column(String, nullable=True)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class Bill(Base):
    """Bill model.

    Orders are referenced through the ``order_ids`` list rather than a
    foreign key, so an order's lifecycle stays independent of the bill.
    """

    __tablename__ = "bills"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    order_ids = Column(JSON, nullable=False)
    order_count = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), default=0, nullable=False)
    remaining_amount = Column(Numeric(10, 2), nullable=False)
    bill_status = Column(String, default="unpaid", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    client = relationship("Client", back_populates="bills")
    payments = relationship("Payment", back_populates="bill", cascade="all, delete-orphan")


class Payment(Base):
    """Payment model."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    remark = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    bill = relationship("Bill", back_populates="payments")


class AuditLog(Base):
    """Audit trail entry model. Rows are inserted and bulk-deleted, never updated."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String, nullable=False)
    entity = Column(String, nullable=False, index=True)
    entity_id = Column(String, nullable=False)
    diff_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False, index=True)


#: Execution option naming the SQLite BEGIN mode for a transaction
SQLITE_BEGIN_OPTION = "sqlite_begin"


def _install_sqlite_begin(engine: Engine) -> None:
    """Let a transaction ask for ``BEGIN IMMEDIATE`` through an execution option.

    pysqlite defers BEGIN until the first write, so reads that validate a
    write would otherwise run outside the transaction. Transactions without
    the option keep the driver's own behaviour.
    """

    @event.listens_for(engine, "begin")
    def _begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION)
        if mode:
            conn.exec_driver_sql(f"BEGIN {mode}")


def create_session_factory(database_url: str, **engine_options: Any) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory.

    Args:
        database_url: SQLAlchemy database URL
        **engine_options: Extra ``create_engine`` arguments, e.g. ``connect_args``
    """
    engine = create_engine(database_url, echo=False, **engine_options)
    if engine.dialect.name == "sqlite":
        _install_sqlite_begin(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
