"""
Queue-consuming vote worker.

Pops vote payloads off a Redis list and keeps the latest vote per voter
in PostgreSQL:
- config.py: environment configuration
- models.py: VoteEvent, payload parsing, queue pop results
- retry.py: connect-until-success policy shared by both clients
- redis_client.py: the vote queue
- database.py: the votes table
- worker.py: the polling loop and entry point
"""

__version__ = '2.0.0'
