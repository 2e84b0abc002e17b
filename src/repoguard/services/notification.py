"""Issue text announcing the protection rules added to a new repository."""

PROTECTED_BRANCHES_HELP_URL = (
    "https://docs.github.com/repositories/configuring-branches-and-merges-in-your-repository/"
    "managing-protected-branches/about-protected-branches"
)

ISSUE_TITLE = "Default Branch Protected 🔐"


def render_issue_body(username: str, branch: str, required_reviews: int = 2, enforce_admins: bool = True) -> str:
    """Markdown body mentioning the repository creator and the protected branch."""
    lines = [
        f"@{username}: branch protection rules have been added to the `{branch}` branch.",
        "- Collaborators cannot force push to the protected branch or delete the branch",
        "- All commits must be made to a non-protected branch and submitted via a pull request",
        f"- There must be at least {required_reviews} approving reviews and no changes requested "
        "before a PR can be merged",
    ]
    if enforce_admins:
        lines.append("")
        lines.append("**Note:** All configured restrictions are enforced for administrators.")
    lines.append("")
    lines.append(f"You can learn more about protected branches here: [About protected branches]({PROTECTED_BRANCHES_HELP_URL})")
    return "\n".join(lines)
