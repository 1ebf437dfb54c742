"""
Prompt Templates

Prompts sent to Ollama when it is used for text extraction.
"""


EXTRACTION_SYSTEM_PROMPT = """You are an expert data analyst. You turn short personal notes into structured JSON.

Key guidelines:
1. Return only JSON, no prose
2. Use numbers for metric values
3. Leave a group empty rather than guessing"""


EXTRACTION_PROMPT = """Extract structured data from this text and return it as JSON.

Text: "{text}"

Extract the following information:
1. NUMBERS: Any numerical values with their context (e.g., "2 goals" -> {{"goals": 2}})
2. METRICS: Performance metrics, measurements, scores
3. CATEGORIES: Group related items (e.g., "goals, assists" -> "sports_performance")
4. ENTITIES: People, places, objects, concepts mentioned
5. SENTIMENT: Overall tone (positive/negative/neutral)
6. IMPROVEMENT_AREAS: Things that need work or improvement

Return ONLY valid JSON in this exact format:
{{
  "metrics": {{"metric_name": number}},
  "categories": {{"category_name": ["item1", "item2"]}},
  "entities": {{"entity_type": ["entity1", "entity2"]}},
  "sentiment": "positive|negative|neutral",
  "confidence": 0.95,
  "structuredData": {{"key": "value"}}
}}

Be precise and extract all relevant information."""


def build_extraction_prompt(text: str) -> str:
    """Build the extraction prompt for one text entry."""
    return EXTRACTION_PROMPT.format(text=text.replace('"', "'"))
