"""GravixOCR: image preprocessing plus text extraction through a hosted model.

Packages:
- gravixocr.image: preprocessing pipeline (grayscale → PNG)
- gravixocr.llm: inference API client, request and response handling
- gravixocr.pipeline: per-request orchestration (`extract_text`)
- gravixocr.api: FastAPI application
"""

__version__ = "0.1.0"
