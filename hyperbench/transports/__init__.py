"""Transport implementations: HTTP REST inserts and MQTT publishes."""
