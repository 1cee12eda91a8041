"""Background jobs: dramatiq tasks and the batch scheduler."""
