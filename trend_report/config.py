"""Configuration consumed by the report pipeline."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

AttachmentMode = Literal["inline", "stored"]


class ReporterConfig(BaseModel):
    """Configuration for one reporting run."""

    output_folder: str = "trend-report"
    # "inline" embeds attachments as data: URLs, "stored" copies them to disk
    attachment_mode: AttachmentMode = "stored"
    compress_images: bool = True
    image_quality: int = 80
    history_trend: int = Field(default=4, gt=0)
    reset_history: bool = False
    build_identifier: str = "N/A"
    report_title: str = "Failure Analysis Report"
    history_file_name: str = "history.json"
    report_data_file_name: str = "custom-report-data.json"
    attachments_dir_name: str = "attachments"

    @field_validator("image_quality")
    @classmethod
    def _clamp_quality(cls, value: int) -> int:
        return max(1, min(100, value))
