"""
AI agent for extracting structured entities from meeting transcripts:
topics, action items, decisions and overall sentiment.
"""

from pydantic import ValidationError

from meeting_knowledge.agents.base_agent import BaseAgent, AgentProcessingError, MalformedResponseError
from meeting_knowledge.schemas.ingest import ExtractedEntities
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)


class EntityExtractorAgent(BaseAgent):
    """
    AI agent that turns a meeting transcript into structured entities.

    Claude is asked for JSON only. The answer must match ExtractedEntities
    exactly; anything else is reported as a MalformedResponseError rather
    than repaired.
    """

    def process(self, transcript_content: str, **kwargs) -> ExtractedEntities:
        """
        Extract topics, action items, decisions and sentiment.

        Args:
            transcript_content: The raw transcript text to analyze
            **kwargs: Additional parameters (unused)

        Returns:
            Validated ExtractedEntities

        Raises:
            AgentProcessingError: If the Claude call fails
            MalformedResponseError: If the answer does not match the expected shape
        """
        logger.info(f"[{self.agent_name}] Starting entity extraction",
                    transcript_length=len(transcript_content))

        if not transcript_content.strip():
            raise AgentProcessingError("Cannot extract entities from empty transcript")

        prompt = self._build_extraction_prompt(transcript_content)
        raw_response = self._call_claude(prompt, self._build_system_prompt())
        payload = self._parse_json(raw_response)

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Expected a JSON object of entities, got {type(payload).__name__}"
            )

        try:
            entities = ExtractedEntities.model_validate(payload)
        except ValidationError as e:
            logger.error(f"[{self.agent_name}] Extracted entities have the wrong shape",
                         errors=e.error_count(),
                         response_preview=self._truncate_for_log(raw_response))
            raise MalformedResponseError(f"Extracted entities have the wrong shape: {e}") from e

        logger.info(f"[{self.agent_name}] Entities extracted",
                    topics=len(entities.topics),
                    action_items=len(entities.action_items),
                    decisions=len(entities.decisions),
                    sentiment=entities.sentiment)

        return entities

    def _build_system_prompt(self) -> str:
        """Build the system prompt for Claude."""
        return """You are an assistant that extracts structured information from meeting transcripts.
Extract: topics, action items, decisions, and sentiment.
Return ONLY valid JSON with this structure and nothing else:
{
  "topics": ["topic1", "topic2"],
  "action_items": [{"text": "task description", "assignee": "name or null", "due_date": "YYYY-MM-DD or null", "priority": "high|medium|low"}],
  "decisions": ["decision1", "decision2"],
  "sentiment": "positive|neutral|negative"
}"""

    def _build_extraction_prompt(self, transcript_content: str) -> str:
        """
        Build the prompt for extracting entities.

        Args:
            transcript_content: The transcript to analyze

        Returns:
            Formatted prompt string
        """
        transcript_content = self._truncate_transcript(transcript_content)

        return f"""Extract information from this meeting transcript.

Use null for an unknown assignee or due date. Use an empty list when there
are no topics, action items or decisions.

TRANSCRIPT:
{transcript_content}

JSON:"""
