"""
Core Package

Contains the shared building blocks of the gateway:
- config: Pydantic Settings loaded from the environment / .env
- logging: Centralized logger and log helpers
- schemas: Pydantic models for requests, cached responses and trades
- utils: UTC time helpers
"""
