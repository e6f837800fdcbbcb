"""Models returned by the Cloudflare REST helpers."""

from pydantic import BaseModel, Field


class DeploymentInfo(BaseModel):
    """Last successful production deployment of a Pages project."""

    deployed_at: str = Field(..., description="When the deploy stage finished (ISO 8601)")
    commit_hash: str | None = Field(None, description="Git commit that was deployed")
    commit_message: str | None = Field(None, description="Commit message of that commit")
    status: str = Field("success", description="Deployment status")
    url: str | None = Field(None, description="Preview URL of the deployment")
