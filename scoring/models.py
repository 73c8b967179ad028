from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Metric fields shared by employee KPI entries, targets and imports.
PERCENTAGE_FIELDS = (
    "productivityRate",
    "prebookRate",
    "firstTimeRetentionRate",
    "repeatRetentionRate",
    "retailPercentage",
    "clientsRetailPercentage",
    "netCashPercentage",
    "attendanceRate",
)
SCORE_FIELDS = ("happinessScore", "customerSatisfactionScore")


def _normalize_month(value: Any) -> Any:
    # "3", 3 and "03" all mean March.
    if isinstance(value, bool):
        return value
    if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
        month = int(value)
        if not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12")
        return f"{month:02d}"
    return value


class Employee(BaseModel):
    id: str
    name: str
    email: str = ""
    divisionId: str
    position: str = ""
    category: str | None = None
    isActive: bool = True
    primaryLocation: str | None = None


class KPIValues(BaseModel):
    productivityRate: float = 0
    prebookRate: float = 0
    firstTimeRetentionRate: float = 0
    repeatRetentionRate: float = 0
    retailPercentage: float = 0
    newClients: float = 0
    averageTicket: float = 0
    serviceSalesPerHour: float = 0
    clientsRetailPercentage: float = 0
    hoursSold: float = 0
    happinessScore: float = 0
    netCashPercentage: float = 0
    attendanceRate: float = 0
    trainingHours: float = 0
    customerSatisfactionScore: float = 0


class EmployeeKPIData(KPIValues):
    """
    One employee's KPI actuals for a month, as stored under the dashboard's KPI keys:
      { "employeeId": "emp-1", "divisionId": "laser", "month": "03", "year": 2025, "productivityRate": 88, ... }
    """

    employeeId: str
    divisionId: str
    month: str
    year: int
    locationId: str | None = None
    enteredBy: str | None = None
    enteredAt: datetime | None = None
    approvedBy: str | None = None
    approvedAt: datetime | None = None
    notes: str | None = None

    @field_validator("month", mode="before")
    @classmethod
    def normalize_month(cls, value: Any) -> Any:
        return _normalize_month(value)

    def to_disk_doc(self) -> dict[str, Any]:
        # Python mode keeps datetimes as objects; json_store writes them in the revivable form.
        return self.model_dump(exclude_none=True)


class DivisionTarget(KPIValues):
    divisionId: str
    month: str
    year: int
    revenue: float = 0
    profitMargin: float = 0

    @field_validator("month", mode="before")
    @classmethod
    def normalize_month(cls, value: Any) -> Any:
        return _normalize_month(value)


class PayrollEntry(BaseModel):
    id: str | None = None
    employeeId: str
    employeeName: str = ""
    divisionId: str | None = None
    role: str = ""
    homeLocation: str | None = None
    hoursScheduled: float = 0
    hoursWorked: float = 0
    hourlyRate: float = 0
    hourlyPay: float = 0
    commissionPay: float = 0
    otherEarnings: float = 0
    deductions: float = 0
    totalPay: float = 0
    totalRevenue: float = 0
    payrollToRevenuePercent: float | None = None
    statusColor: Literal["green", "yellow", "orange", "red"] | None = None


class ManualDataEntry(EmployeeKPIData):
    id: str
    employeeName: str
    isValidated: bool = False
    validationErrors: list[str] = Field(default_factory=list)
    lastModified: datetime | None = None


class ImportBatch(BaseModel):
    id: str
    fileName: str
    month: str
    year: int
    uploadedAt: datetime
    uploadedBy: str | None = None
    recordCount: int = 0
    successCount: int = 0
    errorCount: int = 0
    status: Literal["processing", "completed", "failed"] = "processing"
    errors: list[str] = Field(default_factory=list)
    entries: list[ManualDataEntry] = Field(default_factory=list)

    def summary_doc(self) -> dict[str, Any]:
        """The batch as stored under `importBatches` (entries live under their own key)."""
        return self.model_dump(exclude={"entries"}, exclude_none=True)
