"""Domain layer: records, ports and the resolution/ingestion pipeline."""
