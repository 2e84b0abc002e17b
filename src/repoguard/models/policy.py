"""Branch protection policy applied to newly created repositories."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BranchProtectionPolicy(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    required_approving_reviews: int = Field(2, ge=1, le=6)
    enforce_admins: bool = True

    def to_github_payload(self) -> dict[str, Any]:
        """Body for ``PUT /repos/{owner}/{repo}/branches/{branch}/protection``.

        The endpoint requires all four top-level keys; ``None`` disables a rule.
        """
        return {
            "required_status_checks": None,
            "enforce_admins": self.enforce_admins,
            "required_pull_request_reviews": {
                "required_approving_review_count": self.required_approving_reviews,
            },
            "restrictions": None,
        }


DEFAULT_POLICY = BranchProtectionPolicy()
