"""
Upload API Routes

Endpoint for CSV, Excel and plain-text file upload.
"""

from fastapi import APIRouter, File, HTTPException, UploadFile

from api.schemas.responses import UploadResponse
from config import get_settings
from core.csv_parser import EmptyCSVError, UnreadableSpreadsheetError, csv_parser
from core.dataset_store import StorageUnavailableError, dataset_store
from core.logging_config import upload_logger as logger
from core.models import Dataset
from extraction.text_processor import TextValidationError, text_processor


router = APIRouter()

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls", ".txt")


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
) -> UploadResponse:
    """
    Upload a CSV or Excel file, or a plain-text note.

    CSV and Excel files become tabular datasets; only the first worksheet
    of a workbook is read. Text files go through text
    extraction and are stored as a one-row text-entry dataset.
    """
    settings = get_settings()

    filename = file.filename or ""
    if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="Only CSV, Excel and TXT files are supported"
        )

    content = await file.read()

    file_size_mb = len(content) / (1024 * 1024)
    if file_size_mb > settings.max_file_size_mb:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_file_size_mb}MB"
        )

    try:
        if filename.lower().endswith(".txt"):
            dataset = await _text_dataset(content, filename)
        else:
            dataset = csv_parser.load(content, filename)

        dataset_store.save(dataset)

    except (EmptyCSVError, UnreadableSpreadsheetError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TextValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception(f"Upload of {filename} failed")
        raise HTTPException(
            status_code=500,
            detail=f"Error processing file: {str(e)}"
        )

    logger.success(f"Uploaded {filename}: {len(dataset.rows)} rows, {len(dataset.columns)} columns")
    return UploadResponse(
        dataset_id=dataset.id,
        filename=filename,
        row_count=len(dataset.rows),
        column_count=len(dataset.columns),
        columns=dataset.columns,
        column_types={k: v.value for k, v in dataset.column_types.items()},
        sample=[row.to_dict() for row in dataset.sample(5)],
        message=f"Successfully uploaded and processed {filename}",
    )


async def _text_dataset(content: bytes, filename: str) -> Dataset:
    text = text_processor.validate_text(csv_parser.decode(content))
    result = await text_processor.process(text)
    return result.to_dataset(name=filename)
