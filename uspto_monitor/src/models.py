import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class FilingType(str, Enum):
    PATENT = "Patent"
    TRADEMARK = "Trademark"


class MatterStatus:
    """Display labels written to the matter registry."""

    PENDING = "Pending Automation"
    PROCESSING = "Processing..."
    COMPLETED = "Completed"
    NO_UPDATES = "No Updates"
    FAILED = "Failed"


class Matter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lawmatics_id: str = Field(..., alias="lawmaticsID", description="CRM-side matter identifier")
    application_number: str = Field(..., alias="applicationNumber")
    type: FilingType
    status: str = MatterStatus.PENDING
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    last_updated: str = Field(default_factory=utc_now_iso, alias="lastUpdated")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Document(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: dt.date = Field(..., description="Effective date used for novelty comparison")
    description: str = "Unknown"
    document_code: str = Field("N/A", description="Patent classification code")
    category: str = Field("N/A", description="Patent direction category")
    link: str = Field("N/A", description="Source download link")
    drive_link: Optional[str] = None
    file_type: Optional[str] = None

    @property
    def date_key(self) -> str:
        return self.date.isoformat()

    @property
    def best_link(self) -> str:
        return self.drive_link or self.link or "N/A"

    def has_source_link(self) -> bool:
        return bool(self.link) and self.link != "N/A"


class FetchResult(BaseModel):
    documents: List[Document] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class StepOutcome(str, Enum):
    OK = "ok"
    FALLBACK = "fallback"
    FAILED = "failed"
    SKIPPED = "skipped"


class PipelineResult(BaseModel):
    document: Document
    steps: Dict[str, StepOutcome] = Field(default_factory=dict)

    @property
    def failed_steps(self) -> List[str]:
        return [name for name, outcome in self.steps.items() if outcome == StepOutcome.FAILED]


class MatterResult(BaseModel):
    """Outcome of one guarded processing attempt for a matter."""

    lawmatics_id: str
    application_number: Optional[str] = None
    type: Optional[FilingType] = None
    success: bool = True
    processed: bool = False
    rejected: bool = False
    message: str = ""
    doc_count: int = 0
    latest_doc_date: Optional[str] = None
    description: Optional[str] = None
    pipeline: List[PipelineResult] = Field(default_factory=list)

    @property
    def multi_doc(self) -> bool:
        return self.doc_count > 1


class RunReport(BaseModel):
    success: bool = True
    message: str = ""
    total: int = 0
    updated: int = 0
    documents: int = 0
    results: List[MatterResult] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now_iso)

    @property
    def updated_results(self) -> List[MatterResult]:
        return [r for r in self.results if r.processed]

    def envelope(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "total": self.total,
            "updated": self.updated,
            "documents": self.documents,
            "successful": sum(1 for r in self.results if r.success),
            "results": [
                r.model_dump(mode="json", exclude={"pipeline"}) for r in self.results
            ],
            "timestamp": self.timestamp,
        }
