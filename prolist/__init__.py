"""
ProList Application Package

This package contains the directory backend modules:
- api: FastAPI application, dependencies and route modules
- auth: Token verification and signup via Supabase Auth
- billing: Stripe checkout, webhook decoding and subscription reconciliation
- db: Supabase data store client
- tests: Test suites
"""
