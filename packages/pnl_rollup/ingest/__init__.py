"""Raw row ingestion: CSV reading, per-source field profiles, taxonomy seeding."""
