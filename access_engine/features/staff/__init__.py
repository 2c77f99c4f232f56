"""
Support staff feature module.

Staff identities are outside the org chart; they see advisors through
delegations granted by an admin.
"""
