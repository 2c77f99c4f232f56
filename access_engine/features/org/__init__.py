"""
Organizational hierarchy feature module.

Org nodes (advisors and managers) form a forest through manager_code; teams
hang off a designated head node.
"""
