"""Pydantic models used for transaction validation and analytics output.

These models define the documents stored in the collections shared with the
dashboard service (`transactions`, `csvuploads`, `withdrawals`) and the
summary shapes consumed by dashboard cards and charts. Field names are
snake_case in Python and camelCase (the stored/JSON names) via aliases.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER = "N/A"


class CsvUploadStatus(str, Enum):
    """Processing states of an uploaded statement."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    STRIPE = "stripe"


class Transaction(BaseModel):
    """Schema for one royalty transaction (one statement row).

    Attributes:
        csv_upload_id: Id of the upload the row came from.
        row_number: 1-based row position inside the statement.
        transaction_id: Stable key, `TRANS-<uploadId>-<rowNumber>`.
        service_type: Platform name (e.g. 'Spotify').
        territory: Country of sale.
        asset_type: Asset/content type reported by the statement, if any.
        quantity: Stream or unit count.
        revenue: Gross revenue in the statement currency.
        revenue_usd: Net amount due in US dollars.
        transaction_date: Reporting month/date of the row.
        raw_data: The original CSV row, kept for debugging.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    csv_upload_id: str = Field(..., alias="csvUploadId")
    row_number: int = Field(..., ge=1, alias="rowNumber")
    transaction_id: str = Field(..., alias="transactionId")
    title: str = ""
    artist: str = ""
    isrc: str = ""
    upc: str = ""
    label: str = ""
    service_type: str = Field("", alias="serviceType")
    territory: str = ""
    transaction_type: str = Field("stream", alias="transactionType")
    asset_type: str = Field("", alias="assetType")
    quantity: int = Field(0, ge=0)
    revenue: float = 0.0
    currency: str = "USD"
    revenue_usd: float = Field(0.0, alias="revenueUSD")
    transaction_date: datetime = Field(..., alias="transactionDate")
    notes: str = ""
    raw_data: dict[str, Any] = Field(default_factory=dict, alias="rawData")
    created_at: datetime | None = Field(None, alias="createdAt")


class CsvUpload(BaseModel):
    """Schema for an uploaded statement and its processing progress."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)
    file_name: str = Field(..., alias="fileName")
    original_file_name: str = Field(..., alias="originalFileName")
    file_path: str = Field(..., alias="filePath")
    file_size: int = Field(..., ge=0, alias="fileSize")
    mime_type: str = Field("text/csv", alias="mimeType")
    uploaded_by: str | None = Field(None, alias="uploadedBy")
    status: CsvUploadStatus = CsvUploadStatus.PENDING
    processed_rows: int = Field(0, ge=0, alias="processedRows")
    total_rows: int = Field(0, ge=0, alias="totalRows")
    progress: int = Field(0, ge=0, le=100)
    error_message: str | None = Field(None, alias="errorMessage")
    created_at: datetime = Field(..., alias="createdAt")
    completed_at: datetime | None = Field(None, alias="completedAt")


class Withdrawal(BaseModel):
    """Schema for a withdrawal request against a user's earnings."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, extra="ignore")
    user: str
    amount: float = Field(..., gt=0)
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    notes: str | None = None


class LastTransaction(BaseModel):
    """Card data for the most recent transaction."""
    model_config = ConfigDict(extra="forbid")
    artist: str = PLACEHOLDER
    title: str = PLACEHOLDER
    service: str = PLACEHOLDER
    territory: str = PLACEHOLDER
    date: str = PLACEHOLDER
    amount: float = 0.0


class MonthlyPerformance(BaseModel):
    model_config = ConfigDict(extra="forbid")
    month: str
    revenue: float
    streams: int


class CountryShare(BaseModel):
    model_config = ConfigDict(extra="forbid")
    country: str
    percentage: float


class PlatformShare(BaseModel):
    model_config = ConfigDict(extra="forbid")
    platform: str
    percentage: float


class YearlyRevenue(BaseModel):
    model_config = ConfigDict(extra="forbid")
    year: str
    revenue: float


class AnalyticsSummary(BaseModel):
    """Dashboard summary derived from a list of transactions.

    Never persisted; always re-derivable from the transaction set.
    Serialize with `model_dump(by_alias=True)` for the camelCase shape.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")
    total_balance: float = Field(0.0, alias="totalBalance")
    last_transaction: LastTransaction = Field(default_factory=LastTransaction, alias="lastTransaction")
    last_statement_period: str = Field(PLACEHOLDER, alias="lastStatementPeriod")
    total_revenue: float = Field(0.0, alias="totalRevenue")
    total_streams: int = Field(0, alias="totalStreams")
    transaction_count: int = Field(0, ge=0, alias="transactionCount")
    performance_data: list[MonthlyPerformance] = Field(default_factory=list, alias="performanceData")
    country_data: list[CountryShare] = Field(default_factory=list, alias="countryData")
    platform_data: list[PlatformShare] = Field(default_factory=list, alias="platformData")
    yearly_revenue_data: list[YearlyRevenue] = Field(default_factory=list, alias="yearlyRevenueData")
    total_music: int = Field(0, ge=0, alias="totalMusic")
    total_videos: int = Field(0, ge=0, alias="totalVideos")
    total_royalty: float = Field(0.0, alias="totalRoyalty")
