"""Haiku-powered ingredient normalization via the Claude CLI."""

from __future__ import annotations

import json
import logging
import subprocess

from grocery_planner.models import NormalizationError, NormalizedResult

logger = logging.getLogger(__name__)

NORMALIZE_PROMPT = """\
Sei un assistente esperto per la spesa. Il tuo compito è NORMALIZZARE ingredienti simili e SOMMARE le quantità.

REGOLE DI NORMALIZZAZIONE:
1. Raggruppa varianti dello stesso ingrediente base:
   - "Pomodori rossi", "Pomodorini", "Pomodori pelati", "Pomodori ciliegino" → "Pomodori"
   - "Olio extravergine d'oliva", "Olio d'oliva", "Olio EVO" → "Olio d'oliva"
   - "Sale fino", "Sale grosso" → "Sale"
   - "Aglio 1 spicchio", "Aglio 2 spicchi" → "Aglio"
   - Singolare e plurale sono lo stesso ingrediente: "Uovo", "Uova" → "Uova"
2. Mantieni separati ingredienti REALMENTE diversi:
   - "Petto di pollo" ≠ "Cosce di pollo" (tagli diversi)
   - "Yogurt greco" ≠ "Yogurt magro" (prodotti diversi)
3. Somma le quantità per ingredienti normalizzati:
   - Converti solo tra unità compatibili: peso con peso (1 kg + 500 g → 1500 g), volume con volume (1 l + 200 ml → 1200 ml)
   - Unità incompatibili restano separate e unite da " + " (es. "200 g + 2 cucchiai")
   - "q.b." (quanto basta) non si somma: se ci sono numeri E "q.b.", scrivi "XXX g + q.b."
   - Le quantità a pezzi (uova, zucchine, limoni) si arrotondano all'intero successivo
4. Ogni normalizedName deve comparire UNA sola volta.

Rispondi SOLO con un oggetto JSON {"normalized": [...]} dove ogni elemento ha:
{"normalizedName": "nome normalizzato per la spesa", "totalQuantity": "quantità totale", "count": numero di volte che appare}

Esempio:
Input: ["Pomodori rossi 200 g", "Pomodorini ciliegino 150 g", "Sale fino q.b.", "Sale grosso q.b.", "Olio EVO 30 g", "Olio extravergine d'oliva q.b."]
Output: {"normalized": [
  {"normalizedName": "Pomodori", "totalQuantity": "350 g", "count": 2},
  {"normalizedName": "Sale", "totalQuantity": "q.b.", "count": 2},
  {"normalizedName": "Olio d'oliva", "totalQuantity": "30 g + q.b.", "count": 2}
]}

Niente markdown, niente spiegazioni.

Ingredienti da analizzare:
"""


def build_prompt(lines: list[str]) -> str:
    numbered = [f"{i}. {line}" for i, line in enumerate(lines, start=1)]
    return NORMALIZE_PROMPT + "\n".join(numbered)


def _call_haiku_raw(
    prompt: str,
    command: str = "claude",
    model: str = "haiku",
    timeout: int = 120,
) -> str:
    """Call Claude via CLI and return raw text output with code fences removed."""
    try:
        result = subprocess.run(
            [command, "--model", model, "-p"],
            input=prompt,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise NormalizationError(f"{command} CLI timed out after {timeout}s")
    except FileNotFoundError:
        raise NormalizationError(f"'{command}' CLI not found. Install it first.")

    if result.returncode != 0:
        raise NormalizationError(f"{command} CLI error: {result.stderr.strip()}")

    text = result.stdout.strip()

    # Strip markdown fences if present
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.endswith("```"):
            text = text[: text.rfind("```")]
        text = text.strip()

    if not text:
        raise NormalizationError(f"Empty response from {command} CLI")

    return text


def find_result_array(payload: object) -> list:
    """Locate the result array in a decoded response.

    Accepts a top-level array, an object with "normalized" or "ingredients",
    or otherwise the first array-valued property.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("normalized", "ingredients"):
            if isinstance(payload.get(key), list):
                return payload[key]
        for value in payload.values():
            if isinstance(value, list):
                return value
    raise NormalizationError("No result array found in normalizer response")


def extract_results(text: str) -> list[NormalizedResult]:
    """Parse and validate the normalizer's JSON reply."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise NormalizationError(f"Invalid JSON from normalizer: {e}")

    return [NormalizedResult.from_dict(item) for item in find_result_array(payload)]


def normalize_lines(
    lines: list[str],
    *,
    command: str = "claude",
    model: str = "haiku",
    timeout: int = 120,
) -> list[NormalizedResult]:
    """Normalize a batch of ingredient lines in a single model call."""
    if not lines:
        return []

    logger.debug("Normalizing %d lines with %s", len(lines), model)
    text = _call_haiku_raw(build_prompt(lines), command=command, model=model, timeout=timeout)
    logger.debug("Normalizer returned %d characters", len(text))

    results = extract_results(text)
    logger.info("Normalized %d lines into %d items", len(lines), len(results))
    return results
