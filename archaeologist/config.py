"""Archaeologist configuration — collaborator endpoints, budgets and tuning knobs."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "ARCHAEOLOGIST_"}

    # LLM
    llm_provider: str = "anthropic"
    llm_model: str = "claude-sonnet-4-5"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    llm_temperature: float = 0.3
    critique_temperature: float = 0.2
    thinking_effort: str = "high"  # low / medium / high
    llm_max_tokens: int = 32768

    # Code host
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 15.0

    # Git
    git_binary: str = "git"
    git_timeout_seconds: float = 30.0

    # Reasoning retries
    reasoning_max_attempts: int = 3
    reasoning_backoff_base_seconds: float = 1.0

    # Evidence pipeline
    file_history_max_commits: int = 25
    max_linked_issues: int = 5

    # Prompt budgets
    diff_char_budget: int = 3000
    pr_comment_limit: int = 10
    pr_comment_char_budget: int = 500
    review_char_budget: int = 300
    issue_body_char_budget: int = 1000
    issue_comment_limit: int = 5
    issue_comment_char_budget: int = 300
    file_history_prompt_limit: int = 15
    critique_narrative_char_budget: int = 3000

    # Confidence policy
    confidence_with_evidence: int = 92
    confidence_without_evidence: int = 65
    critique_penalty: int = 5

    # Deep dive
    deep_dive_max_depth: int = 3
    deep_dive_max_files: int = 10
    deep_dive_verify: bool = True
    deep_dive_scan_references: bool = False
    reference_scan_max_files: int = 2000
    reference_scan_max_hits: int = 200

    # Artifacts
    artifacts_dir: str = ".archaeologist/reports"

    # Service
    host: str = "0.0.0.0"
    port: int = 8200
    log_level: str = "INFO"


settings = Settings()
