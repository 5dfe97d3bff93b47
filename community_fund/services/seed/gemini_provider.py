"""
Gemini Seed Data Generator

DESIGN DECISION: When the ledger is empty, a Gemini model generates a
realistic 12-month example dataset so the dashboard has something to show.

CRITICAL BOUNDARIES:
- The LLM only PROPOSES seed records; the record store validates them
- The LLM's totals are never used: amountGiven and balances are
  recomputed by the reconciliation engine from the distribution lines
- Any failure degrades to an empty ledger, never to a crash
"""

import json
from typing import Any, Optional

import google.generativeai as genai
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from community_fund.config import GeminiSettings, get_settings
from community_fund.models.record import RecordDraft
from community_fund.services.seed.interface import (
    SeedFetchError,
    SeedProvider,
    drafts_from_entries,
)


SEED_PROMPT = """You are generating sample data for a community fund ledger app.

Generate a realistic 12-month financial dataset for a community fund in Pakistan
(values in PKR), one record per month starting from January.

- The fund consists of roughly 5-10 friends; reuse the same names across months.
- Monthly contributions vary between 50,000 and 250,000 PKR.
- Monthly distributions vary between 30,000 and 200,000 PKR in total.
- For each month, list the distributions with specific recipients
  (e.g. "Local School Fee", "Widow Support (Naseem)", "Medical Bill (Aslam)", "Mosque Repair").
- Some months (Ramadan, Eid, wedding season) have higher contributions,
  some months have higher distributions.
- Amounts are whole numbers.

Respond with ONLY a JSON object in this exact format:
{"records": [{"month": "January", "contributorNames": ["Ali", "Fatima"],
  "amountCollected": 120000,
  "distributions": [{"recipient": "Mosque Repair", "amount": 40000}]}]}"""


def parse_seed_response(text: str) -> list[RecordDraft]:
    """
    Parse the model's JSON answer into seed drafts.

    Accepts either {"records": [...]} or a bare array, and tolerates
    prose or code fences around the JSON.

    Raises:
        SeedFetchError: If no usable JSON is found
        SeedInvalidError: If an entry has malformed values
    """
    data = _extract_json(text)

    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list):
        raise SeedFetchError("Seed response has no 'records' array")
    if not data:
        raise SeedFetchError("Seed response contained no records")

    return drafts_from_entries(data)


def _extract_json(text: str) -> Any:
    text = (text or "").strip()
    if not text:
        raise SeedFetchError("Seed response was empty")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Find the outermost JSON value in the response, earliest opener first
    candidates = sorted(
        (text.find(opener), opener, closer)
        for opener, closer in (("{", "}"), ("[", "]"))
        if opener in text
    )
    for start, _, closer in candidates:
        end = text.rfind(closer) + 1
        if end > start:
            try:
                return json.loads(text[start:end])
            except json.JSONDecodeError:
                continue

    raise SeedFetchError("Seed response is not valid JSON")


class GeminiSeedProvider(SeedProvider):
    """
    Seed provider backed by a Gemini model.

    Transient failures are retried with exponential backoff.
    """

    name = "gemini"

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        wait=None,
    ):
        """
        Args:
            settings: Gemini settings; loaded from the environment if None
            model: A ready model object with generate_content_async.
                   Built from settings if None.
            wait: tenacity wait strategy between attempts
        """
        self._settings = settings or get_settings().gemini
        self._model = model or self._configure_genai()
        self._wait = wait or wait_exponential(multiplier=1, min=2, max=10)

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    async def _generate(self) -> str:
        try:
            response = await self._model.generate_content_async(SEED_PROMPT)
            return response.text
        except Exception as e:
            raise SeedFetchError(f"Gemini request failed: {e}") from e

    async def fetch_seed_records(self) -> list[RecordDraft]:
        """
        Ask Gemini for a year of sample records.

        Raises:
            SeedFetchError: If every attempt fails or returns unusable JSON
            SeedInvalidError: If the returned entries are malformed
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.seed_retry_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(SeedFetchError),
            reraise=True,
        ):
            with attempt:
                text = await self._generate()
                return parse_seed_response(text)
