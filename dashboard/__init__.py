"""PO ingestion dashboard: FastAPI app, request models, services and the HTTP client."""
