"""Application services: unit of work, message bus, locks and retries."""
