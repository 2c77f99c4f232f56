"""
Error taxonomy of the access engine.

A denial is never an exception; evaluator functions return False. The classes
below are for conditions a caller has to surface: corrupted or conflicting
state (IntegrityViolation) and a non-admin reaching an administrative
mutator (NotAuthorizedToAdminister).
"""


class AccessEngineError(Exception):
    """Base class for access engine errors."""
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IntegrityViolation(AccessEngineError):
    """Stored state is inconsistent or the requested change would make it so."""


class HierarchyCycleError(IntegrityViolation):
    """The manager_code chain loops back on itself."""
    
    def __init__(self, path: list[str]):
        super().__init__(f"org chart cycle detected: {' -> '.join(path)}")
        self.path = path


class OrgNodeNotFound(IntegrityViolation):
    def __init__(self, code: str):
        super().__init__("org code not found")
        self.code = code


class StaffNotFound(IntegrityViolation):
    def __init__(self, staff_id: str):
        super().__init__("staff id not found")
        self.staff_id = staff_id


class PrincipalNotFound(IntegrityViolation):
    def __init__(self, principal_id: str):
        super().__init__("principal not found")
        self.principal_id = principal_id


class DelegationNotFound(IntegrityViolation):
    def __init__(self, delegation_id: str):
        super().__init__("delegation not found")
        self.delegation_id = delegation_id


class TeamNotFound(IntegrityViolation):
    def __init__(self, team_id: str):
        super().__init__("team not found")
        self.team_id = team_id


class LinkConflict(IntegrityViolation):
    """A principal or record is already linked elsewhere."""


class DelegationConflict(IntegrityViolation):
    """An active delegation already covers the same staff member and org node."""


class NotAuthorizedToAdminister(AccessEngineError):
    """A principal without the admin role called an administrative operation."""
    
    def __init__(self, action: str):
        super().__init__(f"Only admin users can {action}")
        self.action = action
