"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class ClassifierConfig(BaseSettings):
    """Source-file classification."""

    model_config = {"env_prefix": "HRRECON_CLASSIFIER_"}

    org_separator: str = "_"
    grid_extensions: list[str] = [".csv"]
    narrative_extensions: list[str] = [".txt"]
    sniff_lines: int = 40
    encoding: str = "utf-8"


class ParserConfig(BaseSettings):
    """Grid and narrative parser layout."""

    model_config = {"env_prefix": "HRRECON_PARSER_"}

    boundary_label: str = "Employee No."
    grid_identity_column: int = 3
    grid_value_offset: int = 3
    grid_right_label_columns: list[int] = [5, 9, 10]
    narrative_window: int = 100
    narrative_lookahead: int = 4
    narrative_item_code_width: int = 7
    # Non-blank lines a spouse block may span before the main scope resumes
    narrative_spouse_lines: int = 4
    placeholder_tokens: list[str] = ["", "/", "/ /", "//", "-", "|", "NULL", "N/A"]


class MergeConfig(BaseSettings):
    """Record merge ordering."""

    model_config = {"env_prefix": "HRRECON_MERGE_"}

    # First entry is the "first-processed" grammar for uncovered conflicts.
    grammar_order: list[Literal["grid", "narrative"]] = ["grid", "narrative"]


class OrganizationConfig(BaseSettings):
    """Organization mapping source."""

    model_config = {"env_prefix": "HRRECON_ORG_"}

    source: Literal["file", "dynamodb"] = "file"
    mapping_path: str = "config/organizations.json"


class PipelineConfig(BaseSettings):
    """Batch run tuning."""

    model_config = {"env_prefix": "HRRECON_PIPELINE_"}

    max_workers: int = 4
    batch_size: int = 25
    max_attempts: int = 3
    backoff_seconds: float = 0.5
    backoff_multiplier: float = 2.0


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "HRRECON_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "ap-southeast-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "HRRECON_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    mapping_ttl: int = 3600


class S3Config(BaseSettings):
    """S3 report storage configuration."""

    model_config = {"env_prefix": "HRRECON_S3_"}

    bucket: str = "hrrecon-reports"
    prefix: str = "reports"
    region: str = "ap-southeast-1"
    endpoint_url: str | None = None  # LocalStack override


class ReportConfig(BaseSettings):
    """Where run reports are written."""

    model_config = {"env_prefix": "HRRECON_REPORT_"}

    target: Literal["local", "s3"] = "local"
    local_dir: str = "reports"


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "HRRECON_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    classifier: ClassifierConfig = ClassifierConfig()
    parser: ParserConfig = ParserConfig()
    merge: MergeConfig = MergeConfig()
    organizations: OrganizationConfig = OrganizationConfig()
    pipeline: PipelineConfig = PipelineConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    s3: S3Config = S3Config()
    report: ReportConfig = ReportConfig()
