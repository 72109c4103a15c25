"""
Atelier Modules
===============

Feature blueprints registered by the Atelier extension:
- auth: admin accounts and session login
- projects: portfolio catalog (public + owner CRUD)
- ops: health check and error feed
"""
