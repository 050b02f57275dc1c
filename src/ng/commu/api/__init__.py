"""
Commu-ng API - authentication service

Commu-ng (커뮹!) hosts many communities ("커뮤"), each on its own subdomain of
the console domain or on a verified custom domain. Users keep one account on
the console and carry their identity onto community domains through a
one-time exchange token.

Key Components:
- app: Web application layer with request handlers and server configuration
- auth: Session, exchange token, community resolution and account logic
- model: Database models

Authentication Flow:
1. The user signs in on the console and receives a console-scoped session
2. A community frontend sends the browser to the console's SSO endpoint
3. The console mints a short-lived, single-use exchange token bound to the
   community hostname and redirects the browser there
4. The community frontend redeems the token for a community-scoped session

Console sessions are only accepted by console endpoints and community
sessions only by community endpoints.
"""
