"""Core request handling for the image generation service.

- **config**: Configuration management using Pydantic Settings
- **templates**: Per-type prompt templates and override resolution
- **validation**: Ordered request validation
- **prompt_builder**: Final prompt construction and enrichment fallback
- **pipeline**: Generation and retrieval pipelines plus the ``Services`` bundle
"""
