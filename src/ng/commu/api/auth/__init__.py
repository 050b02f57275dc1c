"""
Authentication Core

Storage-facing logic behind the HTTP handlers:

- errors.py: The closed set of authentication failures and their HTTP mapping
- communities.py: Hostname to community resolution
- sessions.py: Session store with a Redis lookup cache
- exchange.py: Single-use exchange tokens for the console to community hand-off
- accounts.py: Signup, login and bcrypt password handling

Nothing in this package touches aiohttp; stores are constructed at startup and
handed to request handlers through the application's AppKeys.
"""
