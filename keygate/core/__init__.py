"""Core domain models, configuration, and cross-cutting helpers."""
