"""Binary telemetry record containers, decode and publish pipelines."""
