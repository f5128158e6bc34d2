from typing import List, Optional

from pydantic import BaseModel


class CenterCounts(BaseModel):
    awc_center: str
    sam_count: int
    mam_count: int
    normal_count: int
    total_count: int


class StatusShare(BaseModel):
    status: str
    count: int
    percentage: int


class CenterReport(BaseModel):
    centers: List[CenterCounts]
    summary: List[StatusShare]
    total_children: int
    center: Optional[str] = None
    days: Optional[int] = None
