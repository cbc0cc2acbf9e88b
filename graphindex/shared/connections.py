# Connections to Elasticsearch and Neo4j

from typing import Optional

from elasticsearch import Elasticsearch
from neo4j import Driver, GraphDatabase

from .config import Settings, get_settings
from .observability import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """Manages connections to Elasticsearch and Neo4j"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._es_client: Optional[Elasticsearch] = None
        self._neo4j_driver: Optional[Driver] = None

    # Elasticsearch
    def get_elasticsearch_client(self) -> Elasticsearch:
        """Get or create the Elasticsearch client"""
        if self._es_client is None:
            logger.info(
                "Initializing Elasticsearch client",
                url=self.settings.elasticsearch_url,
            )
            basic_auth = None
            if self.settings.elasticsearch_username:
                basic_auth = (
                    self.settings.elasticsearch_username,
                    self.settings.elasticsearch_password or "",
                )
            self._es_client = Elasticsearch(
                self.settings.elasticsearch_url,
                basic_auth=basic_auth,
                request_timeout=self.settings.elasticsearch_timeout,
            )
            logger.info("Elasticsearch client initialized successfully")
        return self._es_client

    def close_elasticsearch(self) -> None:
        if self._es_client is not None:
            logger.info("Closing Elasticsearch client")
            self._es_client.close()
            self._es_client = None

    # Neo4j
    def get_neo4j_driver(self) -> Driver:
        """Get or create Neo4j driver"""
        if self._neo4j_driver is None:
            logger.info(
                "Initializing Neo4j driver",
                uri=self.settings.neo4j_uri,
                user=self.settings.neo4j_user,
            )
            self._neo4j_driver = GraphDatabase.driver(
                self.settings.neo4j_uri,
                auth=(self.settings.neo4j_user, self.settings.neo4j_password),
                max_connection_lifetime=3600,
                connection_acquisition_timeout=60,
            )
            self._neo4j_driver.verify_connectivity()
            logger.info("Neo4j driver initialized successfully")
        return self._neo4j_driver

    def close_neo4j(self) -> None:
        if self._neo4j_driver is not None:
            logger.info("Closing Neo4j driver")
            self._neo4j_driver.close()
            self._neo4j_driver = None

    def close_all(self) -> None:
        """Close all connections"""
        self.close_elasticsearch()
        self.close_neo4j()

    def __enter__(self) -> "ConnectionManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_all()
