from typing import Any, Optional

from pydantic import BaseModel, Field

from statement_parser.services.extraction_controller import PipelineSnapshot, PipelineState


class StatementSessionOut(BaseModel):
    session_id: str
    state: PipelineState
    message: str = ""
    error_code: Optional[str] = None
    result: Optional[dict[str, Any]] = None

    @classmethod
    def from_snapshot(cls, session_id: str, snapshot: PipelineSnapshot) -> "StatementSessionOut":
        return cls(
            session_id=session_id,
            state=snapshot.state,
            message=snapshot.message,
            error_code=snapshot.error_code,
            result=snapshot.record.to_export_dict() if snapshot.record is not None else None,
        )


class ParseTextRequest(BaseModel):
    pdf_text: str = Field(default="", alias="pdfText")

    model_config = {"populate_by_name": True}
