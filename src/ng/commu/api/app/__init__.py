"""
Commu-ng API Application Layer

The web application layer, built on aiohttp.

Key Components:
- cli.py: Entry point for running the application
- server.py: Application factory, middleware and resource lifecycle
- config.py: Settings (pydantic-settings) and the AppKeys handlers use for dependency injection
- handlers/: Request handlers
- tasks.py: Background cleanup and health tasks
- cors.py: CORS for the console domain and its community subdomains
- health.py: Sliding window of recent errors behind the readiness check
- util/: Operator command line utilities

Middleware, outermost first:
- CORS
- Statsd request metrics
- Error decoding (AuthError to JSON, faults to Sentry and a 500)

Endpoints:
- Cross-domain SSO (/auth/sso, /auth/callback, /auth/logout)
- Console accounts (/console/login, /console/signup, /console/me,
  /console/change-password)
- Community app identity (/app/me)
- Health (/health, /internal/alive, /internal/ready)
"""
