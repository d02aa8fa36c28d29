from sqlmodel import SQLModel, Field
from typing import Optional


class Product(SQLModel, table=True):
    """
    Yerel ürün kartı. Sipariş satırlarındaki barkodlar burada yoksa
    sipariş içeri alınmaz.
    """
    pk: Optional[int] = Field(default=None, primary_key=True)
    barcode: str = Field(index=True, unique=True)
    name: str
    api_account_id: Optional[int] = Field(default=None, foreign_key="apiaccount.pk", index=True)
    stock_code: Optional[str] = None
    is_active: bool = True
