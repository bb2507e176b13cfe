#!/usr/bin/env python3
import os
import json
import time
import logging
import requests
from decimal import Decimal
from tqdm import tqdm

from .config import BribeConfig
from .errors import SnapshotQueryError
from .models import Vote

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
MAX_ATTEMPTS = 3

VOTES_QUERY = """
query Votes($proposal: String!, $first: Int!, $skip: Int!) {
  votes(
    first: $first
    skip: $skip
    where: { proposal: $proposal }
    orderBy: "created"
    orderDirection: desc
  ) {
    id
    voter
    vp
    created
    choice
  }
}
"""

PROPOSAL_QUERY = """
query Proposal($id: String!) {
  proposals(where: { id: $id }) {
    id
    title
    choices
    state
    space {
      id
      name
    }
  }
}
"""


def graphql_request(url, query, variables):
    """
    POST a GraphQL query, retrying network failures with exponential backoff.
    Floats in the response are parsed as Decimal.
    """
    for attempt in range(MAX_ATTEMPTS):
        try:
            resp = requests.post(
                url, json={"query": query, "variables": variables}, timeout=REQUEST_TIMEOUT
            )
            resp.raise_for_status()
            break
        except requests.RequestException as e:
            if attempt == MAX_ATTEMPTS - 1:
                logger.error(f"❌ GraphQL request failed after {MAX_ATTEMPTS} attempts: {e}")
                raise
            wait = 2 ** attempt
            logger.warning(f"⚠️ GraphQL request failed (try {attempt + 1}): {e}, retrying in {wait}s")
            time.sleep(wait)

    data = resp.json(parse_float=Decimal)
    if data.get("errors"):
        raise SnapshotQueryError(f"Snapshot hub returned errors: {data['errors']}")
    if "data" not in data:
        raise SnapshotQueryError("Snapshot hub response has no data")
    return data["data"]


def parse_choice(raw):
    """Weighted votes come as {"2": 1, ...}; single-choice votes as a bare int."""
    if isinstance(raw, dict):
        return {int(k): Decimal(str(v)) for k, v in raw.items()}
    if isinstance(raw, int):
        return {raw: Decimal(1)}
    raise SnapshotQueryError(f"Unsupported vote choice format: {raw!r}")


def parse_vote(raw):
    return Vote(
        voter=raw["voter"],
        vp=Decimal(str(raw["vp"])),
        choice=parse_choice(raw["choice"]),
        vote_id=raw.get("id"),
        created=raw.get("created"),
    )


def fetch_proposal_choices(config: BribeConfig):
    """Return the proposal's choices keyed by 1-based choice id."""
    data = graphql_request(config.graphql_url, PROPOSAL_QUERY, {"id": config.proposal_id})
    proposals = data.get("proposals") or []
    if not proposals:
        raise SnapshotQueryError(f"Proposal {config.proposal_id} not found")
    proposal = proposals[0]
    logger.info(f"🔍 Proposal '{proposal.get('title', '')}' has {len(proposal['choices'])} choices")
    return {i: label for i, label in enumerate(proposal["choices"], start=1)}


def fetch_raw_votes(config: BribeConfig):
    """Page through every vote until a page comes back short."""
    votes = []
    page = 0
    with tqdm(desc="Votes", unit="page") as bar:
        while True:
            data = graphql_request(config.graphql_url, VOTES_QUERY, {
                "proposal": config.proposal_id,
                "first": config.page_size,
                "skip": page * config.page_size,
            })
            batch = data.get("votes") or []
            votes.extend(batch)
            bar.update(1)
            if len(batch) < config.page_size:
                break
            page += 1
    logger.info(f"🔍 Fetched {len(votes)} votes for proposal {config.proposal_id}")
    return votes


def fetch_all_votes(config: BribeConfig):
    return [parse_vote(v) for v in fetch_raw_votes(config)]


def _json_default(obj):
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Cannot serialize {type(obj).__name__}")


def save_snapshot(proposal_id, choices, raw_votes, path=None):
    """Save the raw proposal choices and votes so a run can be replayed offline."""
    if path is None:
        path = f'data/qidao/{proposal_id}_votes.json'
    snapshot = {
        'proposal_id': proposal_id,
        'choices': [choices[i] for i in sorted(choices)],
        'votes': raw_votes,
    }
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    with open(path, 'w') as f:
        json.dump(snapshot, f, indent=2, default=_json_default)
    logger.info(f"✅ Saved {len(raw_votes)} votes to {path}")
    return path


def load_snapshot(path):
    """Load a saved snapshot. Returns (choices, votes)."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"{path} not found")
    with open(path, 'r') as f:
        snapshot = json.load(f, parse_float=Decimal)
    choices = {i: label for i, label in enumerate(snapshot['choices'], start=1)}
    votes = [parse_vote(v) for v in snapshot['votes']]
    logger.info(f"ℹ️ Loaded {len(votes)} votes for proposal {snapshot.get('proposal_id')} from {path}")
    return choices, votes


def run_fetch(config: BribeConfig, path=None):
    """Fetch choices and votes from the hub and save them as a snapshot file."""
    logger.info(f"Fetching votes for proposal {config.proposal_id}")
    choices = fetch_proposal_choices(config)
    raw_votes = fetch_raw_votes(config)
    return save_snapshot(config.proposal_id, choices, raw_votes, path)
