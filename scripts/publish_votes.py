#!/usr/bin/env python3
"""
Publish sample votes to the Redis vote queue.

Usage:
    python scripts/publish_votes.py [-n NUM] [--voters N] [--choices a,b] [--malformed N]

Connection settings come from the same environment variables as the worker
(REDIS_HOST, REDIS_PORT, REDIS_DB, REDIS_PASSWORD, VOTES_QUEUE).
"""
import argparse
import random
import time

from vote_worker.models import VoteEvent
from vote_worker.redis_client import VoteQueue
from vote_worker.retry import RetryPolicy

MALFORMED_PAYLOADS = [
    'not json at all',
    '{"vote": "a"}',
    '{"voter_id": "ghost"}',
    '{"vote": "", "voter_id": "blank"}',
    '["a", "123"]',
]


def create_sample_vote(voters: int, choices: list) -> VoteEvent:
    """Create a vote from a random voter in the pool."""
    return VoteEvent(
        voter_id=f"voter-{random.randint(1, voters)}",
        choice=random.choice(choices)
    )


def publish_votes(queue: VoteQueue, num_votes: int, voters: int, choices: list, malformed: int = 0):
    """
    Push votes onto the queue.

    Args:
        queue: Connected vote queue
        num_votes: Number of well-formed votes to push
        voters: Size of the voter pool (smaller pools produce more re-votes)
        choices: Choice tags to pick from
        malformed: Number of malformed payloads to mix in
    """
    payloads = [create_sample_vote(voters, choices).to_json() for _ in range(num_votes)]
    payloads.extend(random.choice(MALFORMED_PAYLOADS) for _ in range(malformed))
    random.shuffle(payloads)

    print(f"Publishing {len(payloads)} payloads to queue '{queue.queue_name}'...")
    print("=" * 60)

    start_time = time.time()
    for payload in payloads:
        queue.push(payload)

    elapsed = time.time() - start_time
    rate = len(payloads) / elapsed if elapsed > 0 else 0

    print("=" * 60)
    print(f"Published {num_votes} votes and {malformed} malformed payloads")
    print(f"  Total time: {elapsed:.2f} seconds")
    print(f"  Average rate: {rate:.0f} payloads/sec")
    print(f"  Queue length now: {queue.length()}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Publish test votes to the Redis vote queue')
    parser.add_argument(
        '-n', '--num-votes',
        type=int,
        default=100,
        help='Number of votes to publish (default: 100)'
    )
    parser.add_argument(
        '--voters',
        type=int,
        default=50,
        help='Number of distinct voters (default: 50)'
    )
    parser.add_argument(
        '--choices',
        default='a,b',
        help='Comma-separated choice tags (default: a,b)'
    )
    parser.add_argument(
        '--malformed',
        type=int,
        default=0,
        help='Number of malformed payloads to mix in (default: 0)'
    )

    args = parser.parse_args()
    choices = [c.strip() for c in args.choices.split(',') if c.strip()]

    vote_queue = VoteQueue(retry_policy=RetryPolicy(delay=1.0, max_attempts=5))
    try:
        vote_queue.connect()
        publish_votes(vote_queue, args.num_votes, args.voters, choices, args.malformed)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
    finally:
        vote_queue.close()
