"""Real-time infrastructure — in-process fan-out + WebSocket.

Learn: Events flow through two pieces:
1. IngestionPipeline → Notifier.broadcast() (one bounded queue per client)
2. Subscription queue → WebSocket → Frontend

This decouples the producer (ingestion) from consumers (connected clients).
"""
