"""OCR orchestration: one job per recognition run."""

from ocrchat.ocr.job import GENERIC_FAILURE, NO_TEXT_RECOGNIZED, JobState, JobView, OCRJob

__all__ = ["GENERIC_FAILURE", "JobState", "JobView", "NO_TEXT_RECOGNIZED", "OCRJob"]
