from pydantic import BaseModel, Field
from typing import Optional, List, Literal

from .purchase_order import ParsedPO


DetectionMethod = Literal["platform", "filename", "content"]
ImportStatus = Literal["success", "failed"]


class Detection(BaseModel):
    """Which vendor parser accepted an upload, and what it produced."""
    vendor: str
    method: DetectionMethod             # how the vendor was chosen
    pos: List[ParsedPO] = Field(default_factory=list)
    multi_po: bool = False              # vendor emits a list of POs per file

    @property
    def skipped_lines(self) -> int:
        return sum(po.skipped_lines for po in self.pos)


class ImportOutcome(BaseModel):
    """Result of importing a single PO out of a batch."""
    po_number: str
    status: ImportStatus
    id: Optional[int] = None            # po_headers.id when stored
    error: Optional[str] = None


class ImportReport(BaseModel):
    """Per-PO results of a multi-PO import; one failure never aborts the rest."""
    vendor: str
    results: List[ImportOutcome] = Field(default_factory=list)

    @property
    def imported(self) -> int:
        return sum(1 for r in self.results if r.status == "success")

    @property
    def message(self) -> str:
        return f"Imported {self.imported} of {len(self.results)} POs"
