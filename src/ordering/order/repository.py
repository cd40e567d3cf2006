"""Order persistence (SQLAlchemy).

``orders.payment_id`` carries a unique constraint: it is what makes order
creation at-most-once per payment when a webhook and a client poll race each
other. Stock is decremented in the same transaction as the insert, with a
conditional UPDATE, so a rejected or duplicate order never consumes stock.
"""

from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError
from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ordering.order.creation import CreateOrder, OrderCreationResult, OutOfStock
from ordering.order.order import Order, OrderAddress, OrderLine, OrderStatus, PaymentMethod
from shared.config import get_settings
from shared.database import Base, session_scope

logger = structlog.get_logger(__name__)


class OrderRecord(Base):
    __tablename__ = "orders"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    order_number: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    vendor_id: Mapped[str] = mapped_column(String(64), index=True)
    payment_method: Mapped[str] = mapped_column(String(20))
    payment_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    subtotal: Mapped[int] = mapped_column(Integer)
    delivery_fee: Mapped[int] = mapped_column(Integer)
    discount: Mapped[int] = mapped_column(Integer, default=0)
    total: Mapped[int] = mapped_column(Integer)
    promo_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default=OrderStatus.PENDING.value)
    delivery_address: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["OrderItemRecord"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItemRecord.id",
    )

    def to_order(self) -> Order:
        return Order(
            id=self.id,
            order_number=self.order_number,
            vendor_id=self.vendor_id,
            items=[
                OrderLine(
                    id=item.item_id,
                    type=item.item_type,
                    name=item.name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
                for item in self.items
            ],
            delivery_address=OrderAddress(**self.delivery_address),
            payment_method=PaymentMethod(self.payment_method),
            payment_id=self.payment_id,
            subtotal=self.subtotal,
            delivery_fee=self.delivery_fee,
            discount=self.discount,
            total=self.total,
            promo_code=self.promo_code,
            status=OrderStatus(self.status),
            created_at=self.created_at,
        )


class OrderItemRecord(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_seq: Mapped[int] = mapped_column(ForeignKey("orders.seq"), index=True)
    item_id: Mapped[str] = mapped_column(String(64))
    item_type: Mapped[str] = mapped_column(String(16))
    name: Mapped[str] = mapped_column(String(255))
    unit_price: Mapped[int] = mapped_column(Integer)
    quantity: Mapped[int] = mapped_column(Integer)

    order: Mapped[OrderRecord] = relationship(back_populates="items")


class StockLevelRecord(Base):
    """Available quantity per sellable item. Items without a row are unlimited."""

    __tablename__ = "stock_levels"

    item_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_type: Mapped[str] = mapped_column(String(16), primary_key=True, default="product")
    name: Mapped[str] = mapped_column(String(255))
    available: Mapped[int] = mapped_column(Integer)


class _StockShortage(Exception):
    def __init__(self, shortage: OutOfStock) -> None:
        super().__init__(shortage.item_name)
        self.shortage = shortage


class OrderRepository:
    def __init__(self, order_number_prefix: str | None = None) -> None:
        self.order_number_prefix = order_number_prefix or get_settings().order_number_prefix

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, order_id: str) -> Order:
        with session_scope() as session:
            record = session.scalar(select(OrderRecord).where(OrderRecord.id == order_id))
            if record is None:
                raise ObjectNotFoundError(f"Order {order_id} does not exist")
            return record.to_order()

    def get_by_payment_id(self, payment_id: str) -> Order | None:
        with session_scope() as session:
            record = session.scalar(select(OrderRecord).where(OrderRecord.payment_id == payment_id))
            return record.to_order() if record is not None else None

    def count_for_payment(self, payment_id: str) -> int:
        with session_scope() as session:
            return len(session.scalars(select(OrderRecord.seq).where(OrderRecord.payment_id == payment_id)).all())

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def set_stock(self, item_id: str, name: str, available: int, item_type: str = "product") -> None:
        with session_scope() as session:
            record = session.get(StockLevelRecord, (item_id, item_type))
            if record is None:
                session.add(StockLevelRecord(item_id=item_id, item_type=item_type, name=name, available=available))
            else:
                record.name = name
                record.available = available

    def available_stock(self, item_id: str, item_type: str = "product") -> int | None:
        with session_scope() as session:
            record = session.get(StockLevelRecord, (item_id, item_type))
            return record.available if record is not None else None

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create(self, command: CreateOrder) -> OrderCreationResult:
        """Insert the order and reserve its stock in one transaction."""
        if command.payment_id:
            existing = self.get_by_payment_id(command.payment_id)
            if existing is not None:
                return OrderCreationResult.existing(existing)

        try:
            with session_scope() as session:
                self._reserve_stock(session, command.items)
                record = self._build_record(command)
                session.add(record)
                session.flush()
                record.order_number = f"{self.order_number_prefix}-{record.seq}"
                session.flush()
                order = record.to_order()
        except _StockShortage as exc:
            return OrderCreationResult(success=False, out_of_stock=exc.shortage)
        except IntegrityError:
            if not command.payment_id:
                raise
            # Another writer created the order for this payment first
            existing = self.get_by_payment_id(command.payment_id)
            if existing is None:
                raise
            logger.info(
                "Duplicate order creation resolved by uniqueness constraint",
                payment_id=command.payment_id,
                order_id=existing.id,
            )
            return OrderCreationResult.existing(existing)

        return OrderCreationResult.created(order)

    @staticmethod
    def _reserve_stock(session: Session, lines: list[OrderLine]) -> None:
        for line in lines:
            result = session.execute(
                update(StockLevelRecord)
                .where(
                    StockLevelRecord.item_id == line.id,
                    StockLevelRecord.item_type == line.type,
                    StockLevelRecord.available >= line.quantity,
                )
                .values(available=StockLevelRecord.available - line.quantity)
            )
            if result.rowcount:
                continue

            stock = session.get(StockLevelRecord, (line.id, line.type))
            if stock is not None:
                raise _StockShortage(OutOfStock(item_name=line.name, available_stock=stock.available))

    @staticmethod
    def _build_record(command: CreateOrder) -> OrderRecord:
        return OrderRecord(
            id=str(uuid4()),
            vendor_id=command.vendor_id,
            payment_method=command.payment_method.value,
            payment_id=command.payment_id,
            subtotal=command.subtotal,
            delivery_fee=command.delivery_fee,
            discount=command.discount,
            total=command.total,
            promo_code=command.promo_code,
            status=OrderStatus.PENDING.value,
            delivery_address=command.delivery_address.model_dump(),
            created_at=datetime.now(UTC),
            items=[
                OrderItemRecord(
                    item_id=line.id,
                    item_type=line.type,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                )
                for line in command.items
            ],
        )
