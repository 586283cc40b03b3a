"""gitsim error types."""


class GitError(Exception):
    """Base class for recoverable command failures.

    Raised inside command handlers and converted into a failed
    ``CommandResult`` by the engine. The message is what the learner sees.
    """


class UsageError(GitError):
    """Raised when a command is missing arguments or has malformed ones."""


class ResolutionError(GitError):
    """Raised when a reference token matches no branch, tag, or commit.

    Attributes:
        token: The reference that could not be resolved.
    """

    def __init__(self, token: str, message: str | None = None) -> None:
        self.token = token
        super().__init__(message or f"fatal: Not a valid object name: '{token}'.")


class PreconditionError(GitError):
    """Raised when the repository state does not allow the command.

    Typical causes are a detached HEAD where a branch is required, or a
    missing remote-tracking branch.
    """


class PushRejected(GitError):
    """Raised when a push would not fast-forward the remote branch.

    Attributes:
        branch: The local branch that was pushed.
    """

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(
            f" ! [rejected]        {branch} -> {branch} (non-fast-forward)\n"
            "hint: Updates were rejected because the tip of your current branch is behind\n"
            "hint: its remote counterpart. Integrate the remote changes (e.g.\n"
            "hint: 'git pull ...') before pushing again."
        )


class UnknownCommand(GitError):
    """Raised when the verb is not in the simulated command set."""

    def __init__(self, verb: str) -> None:
        self.verb = verb
        super().__init__(f"git: '{verb}' is not a git command. See 'git --help'.")
