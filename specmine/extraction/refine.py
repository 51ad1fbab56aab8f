"""Optional Claude pass over a heuristic draft.

Claude rewrites the description and the Given/When/Then scenarios from the
draft and its source symbols. Id, domain, contracts and confidence are never
touched. Any API or parse failure keeps the heuristic draft as it was.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import replace

import anthropic

from specmine.extraction.models import ExtractedScenario, ExtractedSpec

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2.0  # seconds
MAX_SCENARIOS = 8

REFINE_PROMPT = """\
You are reviewing a specification that was reverse-engineered from source code \
by simple heuristics. Improve its description and behavioral scenarios so that a \
developer who has never seen the code understands what it does.

## Draft

**Name:** {name}
**Domain:** {domain}
**Description:** {description}

**Source symbols:** {symbols}

**Contracts:**
{contracts}

**Current scenarios:**
{scenarios}

## Instructions

Respond with a JSON object:
{{
  "description": "One or two sentences describing the behavior",
  "scenarios": [
    {{"name": "Short scenario title", "given": "precondition", "when": "action", "then": "expected outcome"}}
  ]
}}

Only describe behavior the symbols and contracts support. Do not invent features.
Respond ONLY with valid JSON, no other text.
"""


class SpecRefiner:
    """Callable refiner for extract_specs(refine=...)."""

    def __init__(self, client: anthropic.Anthropic, model: str = "claude-sonnet-4-20250514") -> None:
        self._client = client
        self._model = model

    def __call__(self, spec: ExtractedSpec) -> ExtractedSpec:
        return self.refine(spec)

    def refine(self, spec: ExtractedSpec) -> ExtractedSpec:
        prompt = build_prompt(spec)

        for attempt in range(MAX_RETRIES):
            try:
                response = self._client.messages.create(
                    model=self._model,
                    max_tokens=2048,
                    messages=[{"role": "user", "content": prompt}],
                )
                break
            except anthropic.RateLimitError:
                if attempt < MAX_RETRIES - 1:
                    delay = RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(f"Rate limited refining {spec.id}, retrying in {delay}s...")
                    time.sleep(delay)
                else:
                    logger.error(f"Rate limited refining {spec.id} after {MAX_RETRIES} retries, keeping draft")
                    return spec
            except anthropic.APIError as e:
                logger.error(f"API error refining {spec.id}: {e}")
                return spec

        return apply_refinement(spec, _parse_response(response, spec.id))


def build_prompt(spec: ExtractedSpec) -> str:
    contracts = "\n".join(
        f"- {c.type}: {c.description}" + (f" `{c.signature}`" if c.signature else "")
        for c in spec.contracts
    )
    scenarios = "\n".join(
        f"- {s.name}: GIVEN {s.given} WHEN {s.when} THEN {s.then}" for s in spec.scenarios
    )
    return REFINE_PROMPT.format(
        name=spec.name,
        domain=spec.domain,
        description=spec.description,
        symbols=", ".join(s.name_path for s in spec.source_symbols) or "(none)",
        contracts=contracts or "(none)",
        scenarios=scenarios or "(none)",
    )


def _parse_response(response: anthropic.types.Message, spec_id: str) -> dict:
    """Parse Claude's JSON reply. Anything unusable comes back as {}."""
    if not response.content:
        logger.warning(f"Empty refinement response for {spec_id}")
        return {}
    text = response.content[0].text.strip()

    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse refinement JSON for {spec_id}: {text[:200]}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Refinement for {spec_id} is not a JSON object")
        return {}
    return data


def apply_refinement(spec: ExtractedSpec, data: dict) -> ExtractedSpec:
    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        description = spec.description

    scenarios = []
    for item in data.get("scenarios") or []:
        if not isinstance(item, dict):
            continue
        fields = [str(item.get(k) or "").strip() for k in ("name", "given", "when", "then")]
        if all(fields):
            scenarios.append(ExtractedScenario(*fields, inferred=True))

    return replace(
        spec,
        description=description.strip(),
        scenarios=scenarios[:MAX_SCENARIOS] or spec.scenarios,
    )
