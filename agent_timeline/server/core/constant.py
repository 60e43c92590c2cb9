"""Application constants shared by the server modules."""

PROJECT_NAME = "Agent Timeline"
API_V1_STR = "/api/v1"
VERSION = "0.1.0"
SCHEMA_VERSION = "v1"
