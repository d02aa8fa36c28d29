from typing import Optional, List
from datetime import datetime

from sqlmodel import SQLModel, Field, Relationship, UniqueConstraint

from Core.utils.time_utils import utc_now
from Orders.models.trendyol.trendyol_models import Order
from Routes.constants.constants import RouteStatus, TERMINAL_ROUTE_STATUSES


# ---- JOIN: rota ↔ sipariş ----
class RouteOrder(SQLModel, table=True):
    __tablename__ = "route_orders"
    __table_args__ = (
        UniqueConstraint("route_id", "order_id", name="uq_route_order"),
    )

    pk: Optional[int] = Field(default=None, primary_key=True)
    route_id: int = Field(foreign_key="routes.pk", index=True)
    order_id: int = Field(foreign_key="orders.pk", index=True)
    added_at: datetime = Field(default_factory=utc_now)


# ---- ROOT: toplama / paketleme / etiket döngüsü ----
class Route(SQLModel, table=True):
    __tablename__ = "routes"

    pk: Optional[int] = Field(default=None, primary_key=True)

    name: str
    description: Optional[str] = None
    status: RouteStatus = Field(default=RouteStatus.COLLECTING, index=True)

    # sadece finalize'da, bir kez yazılır
    labelPrintedAt: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)

    orders: List[Order] = Relationship(link_model=RouteOrder)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ROUTE_STATUSES
