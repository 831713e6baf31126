"""
Configuration module for memory-search.

Uses pydantic-settings for environment-based configuration. Graph limits
(depth ceilings, related-item caps) and fulltext index names live here so
every channel reads the same values.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Feature flags:
    - enable_vector_search: Run the vector similarity channel for semantic queries
    - ensure_schema_on_startup: Create constraints and indexes when the API starts
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # SERVICE CONFIGURATION
    # ===========================================
    memory_search_port: int = Field(default=8082, description="Service port")
    embedding_model: str = Field(
        default="sentence-transformers/multilingual-e5-base",
        description="Sentence-transformers model used for query embeddings",
    )
    embedding_dimensions: int = Field(
        default=768,
        ge=1,
        description="Expected embedding vector size",
    )

    # ===========================================
    # NEO4J CONFIGURATION
    # ===========================================
    neo4j_uri: str = Field(
        default="bolt://localhost:7687",
        description="Neo4j Bolt protocol URI",
    )
    neo4j_user: str = Field(default="neo4j", description="Neo4j username")
    neo4j_password: str = Field(
        default="devpassword",
        description="Neo4j password",
    )
    neo4j_database: str = Field(default="neo4j", description="Neo4j database name")
    neo4j_query_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Server-side timeout in seconds for each query",
    )
    neo4j_max_pool_size: int = Field(
        default=50,
        ge=1,
        description="Maximum connections held by the driver",
    )

    # Fulltext indexes the exact channel depends on
    metadata_index_name: str = Field(
        default="memory_metadata_idx",
        description="Fulltext index over Memory metadata and name",
    )
    observation_index_name: str = Field(
        default="observation_content_idx",
        description="Fulltext index over Observation content",
    )

    # ===========================================
    # SEARCH DEFAULTS
    # ===========================================
    search_default_limit: int = Field(default=10, ge=1, description="Default result limit")
    search_default_threshold: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Default minimum score for ranked results",
    )

    # ===========================================
    # GRAPH LIMITS
    # ===========================================
    max_graph_depth: int = Field(
        default=2,
        ge=1,
        description="Hop depth used for search enrichment and wildcard context",
    )
    max_related_items: int = Field(
        default=3,
        ge=1,
        description="Cap for each ancestors/descendants list",
    )
    max_traversal_depth: int = Field(
        default=5,
        ge=1,
        description="Global ceiling for explicit traversal depth",
    )
    default_traversal_depth: int = Field(
        default=2,
        ge=1,
        description="Traversal depth used when the caller omits one",
    )
    traversal_result_limit: int = Field(
        default=50,
        ge=1,
        description="Maximum rows returned by an explicit traversal",
    )

    # ===========================================
    # FEATURE FLAGS
    # ===========================================
    enable_vector_search: bool = Field(
        default=True,
        description="Run the vector similarity channel for semantic queries",
    )
    ensure_schema_on_startup: bool = Field(
        default=False,
        description="Create constraints and indexes when the API starts",
    )

    @model_validator(mode="after")
    def validate_depths(self) -> "Settings":
        """Enrichment depth may not exceed the traversal ceiling."""
        if self.max_graph_depth > self.max_traversal_depth:
            msg = (
                f"max_graph_depth ({self.max_graph_depth}) exceeds "
                f"max_traversal_depth ({self.max_traversal_depth})"
            )
            raise ValueError(msg)
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
