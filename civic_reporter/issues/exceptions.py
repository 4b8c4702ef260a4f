class IssueUpdateFailed(Exception):
    """A staff update could not be written; nothing was applied."""

    def __init__(self, issue_id, reason):
        self.issue_id = issue_id
        self.reason = reason
        super().__init__(f"Could not update issue {issue_id}: {reason}")
