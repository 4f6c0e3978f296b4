"""
Contractor CRM backend.

This package contains:
- api: FastAPI routes that create and update CRM records
- auth: JWT verification and the system actor used by automations
- automations: Rule matching, template rendering and email actions
- db: Supabase client and record types
- services: External service integrations (email)
- worker: Celery tasks for delayed and scheduled automations
"""
