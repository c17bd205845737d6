"""Gemini client for scoreboard extraction and scoring-rule parsing.

Provides both a real implementation (Gemini REST API over httpx) and a
mock for testing/development. Neither raises to callers: failures are
logged and surface as "no rows" or "no policy".
"""

import json
import logging
import re
from typing import Any, Optional, Protocol

import httpx

from scrimboard.models.scoring import ScoringPolicy

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"
DATA_URL = re.compile(r"^data:(?P<mime>[^;,]+)?(?:;[^,]*)?,(?P<data>.*)$", re.DOTALL)

EXTRACTION_PROMPT = """
Analyze this battle-royale scoreboard image (CODM/PUBG style). It contains a list of teams, ranks, and kills.

**FINDING RANK 1**:
1. Find the row containing the number "2" in the left rank column.
2. The row IMMEDIATELY ABOVE it is ALWAYS rank 1, even if it shows a trophy, a crown, or no number at all.
3. Do not skip the first row.

**DATA EXTRACTION**:
For EVERY visible row, extract:
- rank: The number on the left. For the trophy/medal row at the top, output 1.
- teamName: The team name exactly as written (e.g. "TEAM23", not "TEAM 23").
- kills: The number in the Kills column.

{team_hint}

**OUTPUT FORMAT**:
Return a pure JSON array:
[
  {{"rank": 1, "teamName": "TEAM23", "kills": 23}},
  {{"rank": 2, "teamName": "TEAM8", "kills": 18}}
]
"""

RULES_PROMPT = """
You are a tournament configuration assistant.
Convert the following natural language scoring rules into a structured JSON object.

INPUT RULES:
"{rules}"

PARSING INSTRUCTIONS:
1. Progressions: "minus 5 points till 11th place" means every rank in the chain gets an explicit value
   (1st=50, 2nd=45, 3rd=40, ...).
2. Ranges: "11th-15th = 8 points" means indices 10 through 14 are all 8.
3. Defaults:
   - "pointsPerKill": integer, 1 if not specified.
   - "rankPoints": array of integers, index 0 is rank 1, at least 50 entries (fill trailing with 0).
"""

EXTRACTION_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "teamName": {"type": "STRING"},
            "rank": {"type": "INTEGER"},
            "kills": {"type": "INTEGER"},
        },
        "required": ["teamName", "rank", "kills"],
    },
}

RULES_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "pointsPerKill": {"type": "INTEGER"},
        "rankPoints": {"type": "ARRAY", "items": {"type": "INTEGER"}},
    },
    "required": ["pointsPerKill", "rankPoints"],
}


def split_data_url(screenshot: str) -> tuple[str, str]:
    """Split a data: URL into (mime type, base64 payload).

    Bare base64 strings are returned as-is with the default mime type.
    """
    match = DATA_URL.match(screenshot)
    if not match:
        return DEFAULT_MIME_TYPE, screenshot
    return match.group("mime") or DEFAULT_MIME_TYPE, match.group("data")


def extract_json(content: str) -> Any:
    """Extract a JSON array or object from model output.

    Handles:
    - Pure JSON
    - JSON wrapped in ```json ... ``` markdown
    - JSON with leading/trailing text
    """
    content = content.strip()

    if "```" in content:
        for part in content.split("```"):
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            if part.startswith(("[", "{")):
                content = part
                break

    starts = [pos for pos in (content.find("["), content.find("{")) if pos != -1]
    if not starts:
        raise ValueError("No JSON found in response")
    content = content[min(starts):]

    # Find the matching closer, ignoring brackets inside strings
    opener = content[0]
    closer = "]" if opener == "[" else "}"
    depth = 0
    end_pos = -1
    in_string = False
    escape_next = False

    for i, char in enumerate(content):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                end_pos = i
                break

    if end_pos == -1:
        raise ValueError(f"No matching closing '{closer}' found")

    return json.loads(content[:end_pos + 1])


def policy_from_payload(data: Any) -> ScoringPolicy | None:
    """Validate a parsed rules payload; None if it is not a usable policy."""
    if not isinstance(data, dict):
        return None
    per_kill = data.get("pointsPerKill", data.get("points_per_kill"))
    ranks = data.get("rankPoints", data.get("rank_points"))
    if isinstance(per_kill, bool) or not isinstance(per_kill, int) or per_kill < 0:
        return None
    if not isinstance(ranks, list) or not ranks:
        return None
    if not all(isinstance(p, int) and not isinstance(p, bool) for p in ranks):
        return None
    return ScoringPolicy(points_per_kill=per_kill, rank_points=list(ranks))


class VisionExtractor(Protocol):
    """What the lobby analysis needs from an AI backend."""

    async def extract_match_data(
        self, image_base64: str, mime_type: str, known_team_names: list[str]
    ) -> list[dict]: ...

    async def parse_scoring_rules(self, rules_text: str) -> ScoringPolicy | None: ...


class MockVisionClient:
    """Mock client returning canned rows and policies.

    Use this for testing and development when no Gemini key is configured.
    """

    def __init__(
        self,
        rows_per_image: Optional[list[list[dict]]] = None,
        policy: Optional[ScoringPolicy] = None,
    ):
        self.rows_per_image = rows_per_image or []
        self.policy = policy
        self.calls: list[tuple[str, str, list[str]]] = []

    async def extract_match_data(
        self, image_base64: str, mime_type: str, known_team_names: list[str]
    ) -> list[dict]:
        """Return the next canned batch; empty once exhausted."""
        index = len(self.calls)
        self.calls.append((image_base64, mime_type, list(known_team_names)))
        logger.info(f"MockVisionClient: returning canned rows for image {index}")
        if index < len(self.rows_per_image):
            return list(self.rows_per_image[index])
        return []

    async def parse_scoring_rules(self, rules_text: str) -> ScoringPolicy | None:
        logger.info("MockVisionClient: returning canned scoring policy")
        return self.policy

    async def close(self):
        pass


class GeminiVisionClient:
    """Gemini REST client for scoreboard images and scoring rules."""

    GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Gemini API key
            model: Model name
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def extract_match_data(
        self, image_base64: str, mime_type: str, known_team_names: list[str]
    ) -> list[dict]:
        """Read scoreboard rows from one screenshot.

        Args:
            image_base64: Base64 image payload (no data: prefix)
            mime_type: Image mime type
            known_team_names: Active roster names, as a reading hint

        Returns:
            Raw row dicts ({"teamName", "rank", "kills"}); empty on any failure
        """
        team_hint = ""
        if known_team_names:
            team_hint = "Registered teams (for reference only): " + ", ".join(known_team_names)

        parts = [
            {"inline_data": {"mime_type": mime_type, "data": image_base64}},
            {"text": EXTRACTION_PROMPT.format(team_hint=team_hint)},
        ]

        try:
            response = await self._call_llm(parts, EXTRACTION_SCHEMA)
            data = extract_json(self._response_text(response))
        except Exception as e:
            logger.error(f"Gemini scoreboard extraction failed: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Expected a JSON array of rows, got {type(data).__name__}")
            return []

        rows = [row for row in data if isinstance(row, dict)]
        logger.info(f"Gemini extracted {len(rows)} rows")
        return rows

    async def parse_scoring_rules(self, rules_text: str) -> ScoringPolicy | None:
        """Turn free-text scoring rules into a policy; None when unparseable."""
        parts = [{"text": RULES_PROMPT.format(rules=rules_text)}]
        try:
            response = await self._call_llm(parts, RULES_SCHEMA)
            data = extract_json(self._response_text(response))
        except Exception as e:
            logger.error(f"Gemini scoring rule parse failed: {e}")
            return None

        policy = policy_from_payload(data)
        if policy is None:
            logger.warning(f"Gemini returned an unusable scoring payload: {str(data)[:100]}")
        return policy

    async def _call_llm(self, parts: list[dict], schema: dict) -> dict:
        """Call the Gemini generateContent endpoint."""
        client = await self._get_client()

        response = await client.post(
            self.GEMINI_API_URL.format(model=self.model),
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
            json={
                "contents": [{"parts": parts}],
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "responseSchema": schema,
                    "temperature": 0.1,
                },
            },
        )

        response.raise_for_status()
        return response.json()

    def _response_text(self, response: dict) -> str:
        """Concatenated text parts of the first candidate."""
        parts = response["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            raise ValueError("Empty response text")
        return text


def get_vision_client(
    api_key: Optional[str] = None,
    model: str = GeminiVisionClient.DEFAULT_MODEL,
    timeout: float = 60.0,
    use_mock: bool = False,
) -> MockVisionClient | GeminiVisionClient:
    """Factory function to get the appropriate vision client.

    Args:
        api_key: Gemini API key
        model: Gemini model name
        timeout: Request timeout in seconds
        use_mock: Force use of mock client

    Returns:
        GeminiVisionClient or MockVisionClient
    """
    if use_mock or not api_key:
        logger.info("Using MockVisionClient")
        return MockVisionClient()
    logger.info(f"Using GeminiVisionClient ({model})")
    return GeminiVisionClient(api_key, model=model, timeout=timeout)
