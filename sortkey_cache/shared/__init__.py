"""Shared cross-cutting helpers (telemetry). No cache logic."""
