"""
Administrative feature module.

Admin-only operations that change identity links, the org chart and
staff delegations.
"""
