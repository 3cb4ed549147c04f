"""
LoadCluster model representing the Redshift cluster a loader writes into.
"""

from pydantic import BaseModel, ConfigDict, Field


class LoadCluster(BaseModel):
    """
    Connection and target details for one Redshift load cluster.

    Attributes:
        cluster_endpoint: Cluster host name
        cluster_port: Cluster port
        use_ssl: Whether connections use SSL
        cluster_db: Database name (optional, loader falls back to its default)
        target_table: Table that COPY loads into
        column_list: Comma-delimited column list for COPY (optional)
        truncate_target: Whether the table is truncated before each load
        connect_user: Database user name
        connect_password: KMS-encrypted password, in loader string format
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "clusterEndpoint": "db.example.com",
                "clusterPort": 5439,
                "useSSL": True,
                "clusterDB": "analytics",
                "targetTable": "events",
                "truncateTarget": False,
                "connectUser": "admin",
                "connectPassword": "AQICAHh...base64...",
            }
        },
    )

    cluster_endpoint: str = Field(..., min_length=1, alias="clusterEndpoint")
    cluster_port: int = Field(..., alias="clusterPort")
    use_ssl: bool = Field(False, alias="useSSL")
    cluster_db: str | None = Field(None, alias="clusterDB")
    target_table: str = Field(..., min_length=1, alias="targetTable")
    column_list: str | None = Field(None, alias="columnList")
    truncate_target: bool = Field(False, alias="truncateTarget")
    connect_user: str = Field(..., min_length=1, alias="connectUser")
    connect_password: str = Field(..., min_length=1, alias="connectPassword")
