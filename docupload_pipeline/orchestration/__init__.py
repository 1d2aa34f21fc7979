"""Upload orchestration: session opening, page loop and pipeline"""

from docupload_pipeline.orchestration.page_uploader import (
    EmptyDocumentError,
    PageUploadLoop,
)
from docupload_pipeline.orchestration.pipeline import (
    DocUploadPipeline,
    PreconditionResult,
)
from docupload_pipeline.orchestration.session import open_upload_session

__all__ = [
    "DocUploadPipeline",
    "PreconditionResult",
    "PageUploadLoop",
    "EmptyDocumentError",
    "open_upload_session",
]
