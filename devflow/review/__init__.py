"""Review-host integration: change-set requests and approval signals.

Components:
- ChangeSetRequest: what to open for a stage
- build_change_set_request: request for an instance's current stage
- GitHubCLI: gh wrapper that opens pull requests and reads review decisions
"""

from .change_set import ChangeSetError, ChangeSetRequest, GitHubCLI, build_change_set_request

__all__ = [
    "ChangeSetError",
    "ChangeSetRequest",
    "GitHubCLI",
    "build_change_set_request",
]
