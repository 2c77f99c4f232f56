"""
Permission engine feature module.

Answers "may this principal touch this record?" from the principal's role,
its linked org node or staff identity, the org chart and active delegations.
"""
