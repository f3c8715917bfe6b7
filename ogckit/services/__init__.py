"""Configuration, OpenAPI document, processes, state and logging for an OGC API service."""