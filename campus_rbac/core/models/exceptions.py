class AccessControlError(Exception):
    """Base exception for the access-control domain."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class RecordNotFoundError(AccessControlError):
    """A referenced user, role, branch or permission does not exist."""
    status_code = 404


class BranchMismatchError(AccessControlError):
    """A branch-scoped role was about to be attached under another branch."""
    status_code = 409

    def __init__(self, role_id, role_branch_id, branch_id):
        self.role_id = role_id
        self.role_branch_id = role_branch_id
        self.branch_id = branch_id
        super().__init__(
            f"Role {role_id} is scoped to branch {role_branch_id} "
            f"and cannot be assigned under branch {branch_id}"
        )


class UnknownPermissionError(AccessControlError):
    """Permission name(s) absent from the catalog."""
    status_code = 422

    def __init__(self, names):
        self.names = sorted(set(names))
        super().__init__(f"Unknown permission(s): {', '.join(self.names)}")


class SystemRoleError(AccessControlError):
    """System roles cannot be removed through normal flows."""
    status_code = 409


class ConfigurationError(AccessControlError):
    """Static access-control configuration is inconsistent with the catalog."""
    status_code = 500
