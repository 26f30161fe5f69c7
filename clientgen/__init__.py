"""Generate TypeScript models, zod validators and admin forms from OpenAPI documents."""

__version__ = "0.1.0"
