import logging
import math
from dataclasses import dataclass
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import BlockedPromptException, StopCandidateException

from app.core.errors import (
    InvalidInput,
    ProviderError,
    SafetyBlocked,
    Unconfigured,
    UpstreamQuotaExceeded,
)

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 150

SCRIPT_TYPES = {
    "advertisement": {
        "name": "Advertisement",
        "description": "A short persuasive spot that promotes a product or service",
        "targetAudience": "Potential customers",
        "keyElements": ["hook", "benefits", "call to action"],
    },
    "podcast": {
        "name": "Podcast Intro",
        "description": "An opening segment that introduces the show and the episode topic",
        "targetAudience": "Podcast listeners",
        "keyElements": ["greeting", "episode overview", "host introduction"],
    },
    "explainer": {
        "name": "Explainer",
        "description": "A clear walkthrough of a concept, product or process",
        "targetAudience": "Newcomers to the topic",
        "keyElements": ["problem", "explanation", "summary"],
    },
    "story": {
        "name": "Story",
        "description": "A narrative with characters and a beginning, middle and end",
        "targetAudience": "General audience",
        "keyElements": ["setting", "conflict", "resolution"],
    },
    "announcement": {
        "name": "Announcement",
        "description": "A concise public message sharing news or an update",
        "targetAudience": "Customers and community",
        "keyElements": ["headline", "key details", "next steps"],
    },
}

SCRIPT_STYLES = {
    "professional": {"name": "Professional", "description": "Polished, confident and credible"},
    "casual": {"name": "Casual", "description": "Relaxed and conversational, like talking to a friend"},
    "energetic": {"name": "Energetic", "description": "Upbeat, enthusiastic and fast-paced"},
    "dramatic": {"name": "Dramatic", "description": "Suspenseful with vivid language and strong pauses"},
    "friendly": {"name": "Friendly", "description": "Warm, approachable and reassuring"},
    "humorous": {"name": "Humorous", "description": "Light-hearted and witty"},
}

TTS_FORMATTING_RULES = """CRITICAL FORMATTING RULES FOR TEXT-TO-SPEECH:
- Output ONLY the spoken text that should be read aloud
- NO markdown formatting, stage directions, titles, speaker labels or timing markers
- NO meta-commentary or notes
- Write complete sentences that flow naturally when spoken
- Use punctuation for natural rhythm: ellipses for pauses, exclamation points for energy, question marks for inflection
- Vary sentence length
- If there are multiple speakers, separate speaker changes with line breaks"""


@dataclass
class ScriptResult:
    script: str
    type: str
    style: str
    word_count: int
    estimated_duration: str
    model: str


def estimate_reading_time(word_count: int) -> str:
    minutes = max(1, math.ceil(word_count / WORDS_PER_MINUTE))
    return f"~{minutes} minute{'s' if minutes != 1 else ''}"


class ScriptGenerator:
    """Drafts TTS-ready scripts with a Gemini text model."""

    def __init__(self, api_key: Optional[str], model_name: str = "gemini-2.5-flash"):
        self.api_key = api_key
        self.model_name = model_name
        self._model = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get_model(self):
        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    @staticmethod
    def build_prompt(topic: str, script_type: dict, script_style: dict, duration: Optional[str] = None) -> str:
        prompt = (
            f"Generate a clean {script_type['name'].lower()} script with a "
            f"{script_style['name'].lower()} tone for text-to-speech conversion.\n\n"
            f"Topic/Idea: {topic}\n\n"
            "Requirements:\n"
            f"- Script Type: {script_type['name']} - {script_type['description']}\n"
            f"- Style: {script_style['name']} - {script_style['description']}\n"
            f"- Target Audience: {script_type['targetAudience']}\n"
            f"- Key Elements: {', '.join(script_type['keyElements'])}"
        )
        if duration and duration.strip():
            prompt += f"\n- Duration: {duration.strip()}"
        return f"{prompt}\n\n{TTS_FORMATTING_RULES}\n\nGenerate a clean, TTS-ready script:"

    async def generate(
        self,
        topic: str,
        script_type: str,
        style: str,
        duration: Optional[str] = None,
    ) -> ScriptResult:
        if not topic or not topic.strip():
            raise InvalidInput("Topic is required.")
        type_config = SCRIPT_TYPES.get(script_type)
        style_config = SCRIPT_STYLES.get(style)
        if type_config is None or style_config is None:
            raise InvalidInput("Invalid script type or style.")
        if not self.enabled:
            raise Unconfigured("Gemini API key is not configured.", provider="gemini")

        logger.info(f"Generating {type_config['name']} script ({style_config['name']}) for topic: {topic[:50]!r}")
        prompt = self.build_prompt(topic.strip(), type_config, style_config, duration)
        try:
            generation_config = genai.GenerationConfig(
                temperature=0.8,
                top_k=40,
                top_p=0.95,
                max_output_tokens=2048,
            )
            response = await self._get_model().generate_content_async(
                prompt,
                generation_config=generation_config,
            )
        except (BlockedPromptException, StopCandidateException) as e:
            raise SafetyBlocked(
                "Content blocked by safety filters. Please try a different topic or style.",
                provider="gemini",
            ) from e
        except google_exceptions.ResourceExhausted as e:
            raise UpstreamQuotaExceeded(provider="gemini") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Gemini script generation error: {e}")
            raise ProviderError(f"Script generation failed: {e}", provider="gemini") from e

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise SafetyBlocked(
                "Content blocked by safety filters. Please try a different topic or style.",
                provider="gemini",
            )
        try:
            text = (response.text or "").strip()
        except ValueError:
            text = ""
        if not text:
            raise ProviderError("No script content received from the model.", provider="gemini")

        word_count = len(text.split())
        return ScriptResult(
            script=text,
            type=type_config["name"],
            style=style_config["name"],
            word_count=word_count,
            estimated_duration=estimate_reading_time(word_count),
            model=self.model_name,
        )
