"""Exceptions shared across layers."""


class CollaboratorUnavailable(Exception):
    """An external service (LLM, messaging) failed or timed out."""

    def __init__(self, collaborator: str, message: str = ""):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}" if message else collaborator)
