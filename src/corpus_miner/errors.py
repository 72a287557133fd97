"""Exception hierarchy for the mining pipeline.

Errors are split by how far they are allowed to propagate:

- SeedFormatError: one seed line, intake continues
- BranchCheckoutError: one branch, the crawl moves on to the next branch
- ProjectError: one project, the worker moves on to the next project
- FatalPipelineError: the shared store is compromised, the run stops
"""


class CorpusMinerError(Exception):
    """Base class for all corpus miner errors."""

    pass


class SeedFormatError(CorpusMinerError):
    """Raised for a malformed line in a seed file."""

    def __init__(self, filename: str, line: int, reason: str):
        self.filename = filename
        self.line = line
        self.reason = reason
        super().__init__(
            f"{filename}, line {line}: Invalid format of the project url input "
            f"({reason}), skipping."
        )


class GitError(CorpusMinerError):
    """Raised when a git operation fails."""

    pass


class ProjectError(CorpusMinerError):
    """Raised when a project cannot be processed any further."""

    pass


class CloneError(GitError, ProjectError):
    """Raised when a repository cannot be cloned."""

    def __init__(self, url: str, detail: str = ""):
        self.url = url
        self.detail = detail
        message = f"Unable to download project {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class BranchCheckoutError(GitError):
    """Raised when a branch cannot be checked out."""

    def __init__(self, branch: str, detail: str = ""):
        self.branch = branch
        self.detail = detail
        message = f"Unable to checkout branch {branch}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FatalPipelineError(CorpusMinerError):
    """Raised when shared pipeline state can no longer be trusted."""

    pass


class ContentStoreError(FatalPipelineError):
    """Raised when a blob cannot be durably registered in the content store."""

    pass
