from typing import Optional, Dict, Any, List
from datetime import datetime
from sqlalchemy import Column, Index
from sqlmodel import SQLModel, Field, JSON

from Core.utils.time_utils import utc_now
from Orders.constants.trendyol_constants import OrderStatus, CLAIMED_ORDER_STATUSES
from Orders.services.lines import extract_barcodes, total_quantity


# ---- Sipariş paketi: Trendyol shipmentPackage başına tek satır ----
class Order(SQLModel, table=True):
    __tablename__ = "orders"

    pk: Optional[int] = Field(default=None, primary_key=True)

    # Dış kararlı anahtar, upsert SADECE buna göre yapılır
    shipmentPackageId: int = Field(index=True, unique=True)
    orderNumber: str = Field(index=True)
    api_account_id: int = Field(foreign_key="apiaccount.pk", index=True)

    # Panel içi statü + Trendyol'dan gelen ham statü
    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    trendyolStatus: str = "Unknown"

    trendyolCustomerId: Optional[int] = None
    supplierId: Optional[int] = None
    customerFirstName: Optional[str] = None
    customerLastName: Optional[str] = None
    customerEmail: Optional[str] = None

    orderDate: Optional[int] = Field(default=None, index=True)
    grossAmount: Optional[float] = None
    totalPrice: Optional[float] = None
    currencyCode: Optional[str] = "TRY"

    cargoTrackingNumber: Optional[str] = None
    cargoProviderName: Optional[str] = None
    cargoTrackingLink: Optional[str] = None

    shipmentAddress: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    invoiceAddress: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    lines: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
    packageHistories: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))

    commercial: bool = False
    micro: bool = False
    deliveryAddressType: Optional[str] = None
    lastModifiedDate: Optional[int] = None
    agreedDeliveryDate: Optional[int] = None

    # her yazımda artar; rota oluştururken iyimser kontrol için
    version: int = 1

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    __table_args__ = (
        Index("ix_orders_account_status", "api_account_id", "status"),
    )

    # ---- Türetilmiş alanlar ----
    @property
    def barcodes(self) -> list[str]:
        return extract_barcodes(self.lines)

    @property
    def total_quantity(self) -> int:
        return total_quantity(self.lines)

    @property
    def is_claimed(self) -> bool:
        return self.status in CLAIMED_ORDER_STATUSES
