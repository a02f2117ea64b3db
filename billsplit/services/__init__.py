"""Receipt ingestion services: storage, document analysis, parsing and the pipeline tying them together."""
