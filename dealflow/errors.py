"""Error taxonomy shared by the lifecycle services."""


class DealflowError(Exception):
    """Base class for every error raised by the bot's services."""


class GenerationError(DealflowError):
    """The narrative generator could not produce text (transport, quota, config)."""


class StoreError(DealflowError):
    """A read or write against the relational store failed."""


class AuthorizationError(DealflowError):
    """A privileged command was invoked by the wrong identity or in the wrong chat."""


class NotFoundError(DealflowError):
    """No idea is bound to the chat, or a looked-up idea does not exist."""
