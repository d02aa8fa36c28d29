from sqlmodel import SQLModel, Field, UniqueConstraint, Column, JSON
from typing import Optional
from datetime import datetime

from Core.utils.time_utils import utc_now


class ApiAccount(SQLModel, table=True):
    """
    Pazaryeri mağazası. Bu modül mağazaları yalnızca OKUR;
    ekleme / düzenleme dışarıdaki mağaza yönetiminin işi.
    """
    __tablename__ = "apiaccount"
    __table_args__ = (
        UniqueConstraint("comp_name", "platform", "account_id",
                         name="uq_apiaccount_comp_platform_account"),
    )

    pk: Optional[int] = Field(default=None, primary_key=True)

    # TEMEL (zorunlu)
    account_id: str = Field(index=True, nullable=False)  # Trendyol sellerId
    comp_name: str = Field(nullable=False)
    platform: str = Field(default="trendyol", index=True, nullable=False)

    # API KİMLİK
    api_key: Optional[str] = None
    api_secret: Optional[str] = None

    # AĞ
    proxy_url: Optional[str] = None

    # PLATFORM ÖZEL
    extra_config: Optional[dict] = Field(sa_column=Column(JSON), default=None)

    # ZAMAN
    created_at: datetime = Field(default_factory=utc_now, index=True)
    last_used_at: Optional[datetime] = None

    # DURUM
    is_active: bool = True

    @property
    def has_credentials(self) -> bool:
        return bool(self.account_id and self.api_key and self.api_secret)

    @property
    def is_sync_eligible(self) -> bool:
        return self.has_credentials and self.is_active is True
