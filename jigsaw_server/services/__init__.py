"""Pipeline services: verification, reconstruction, orchestration and telemetry."""
