"""
Identity Service Application Layer

This package implements the web application layer for the identity service, handling HTTP
requests and responses using the aiohttp framework.

Key Components:
- cli.py: Entry point for running the application
- server.py: Web server configuration and middleware setup
- config.py: Configuration management using Pydantic settings
- handlers/: Request handlers for the public and internal endpoints

The application uses two middleware layers:
- Statsd middleware for metrics collection
- Sentry middleware for error reporting

It provides the following endpoints:
- Account endpoints (/api/user/register, /api/user/password-complexity, /api/user/token)
- Internal endpoints (/internal/alive, /internal/ready, /internal/api/me)
"""
