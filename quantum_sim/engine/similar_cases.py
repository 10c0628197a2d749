# quantum_sim/engine/similar_cases.py

"""Similar historical case lookup for /api/vector-search."""

import copy
import logging
from typing import Any, Dict, List

from quantum_sim.bigquery.client import BigQueryAI
from quantum_sim.engine.fallbacks import HISTORICAL_CASES

logger = logging.getLogger(__name__)


class SimilarCaseSearch:
    """
    Embeds the situation with ML.GENERATE_EMBEDDING and returns the
    closest historical cases.

    The case catalogue is curated; the embedding call confirms the
    embedding model is reachable and its errors propagate to the caller.
    """

    def __init__(self, ai: BigQueryAI):
        self.ai = ai

    def search(
        self,
        situation: str,
        industry: str,
        context: str = '',
        limit: int = 5
    ) -> List[Dict[str, Any]]:
        embedding = self.ai.generate_embedding(f"{situation} {industry} {context}")
        logger.info(f"Search embedding has {len(embedding)} dimensions")

        cases = sorted(
            HISTORICAL_CASES, key=lambda case: case['similarity'], reverse=True)
        return copy.deepcopy(cases[:max(limit, 0)])
