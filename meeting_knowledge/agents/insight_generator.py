"""
AI agent for deriving human-readable insights from a meeting transcript,
using the topics and decisions already extracted from it as context.
"""

from typing import List, Optional

from meeting_knowledge.agents.base_agent import BaseAgent, AgentProcessingError, MalformedResponseError
from meeting_knowledge.config import get_settings
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class InsightGeneratorAgent(BaseAgent):
    """
    AI agent that derives 3-5 insights about a meeting.

    The answer must be a JSON array of strings. A count outside the target
    range is only logged; longer lists are cut to the maximum.
    """

    max_transcript_length = 12000

    def process(
        self,
        transcript_content: str,
        topics: Optional[List[str]] = None,
        decisions: Optional[List[str]] = None,
        **kwargs
    ) -> List[str]:
        """
        Derive insights from the transcript.

        Args:
            transcript_content: The raw transcript text to analyze
            topics: Topics extracted from the transcript
            decisions: Decisions extracted from the transcript
            **kwargs: Additional parameters (unused)

        Returns:
            List of insight strings

        Raises:
            AgentProcessingError: If the Claude call fails
            MalformedResponseError: If the answer is not a list of strings
        """
        topics = topics or []
        decisions = decisions or []

        logger.info(f"[{self.agent_name}] Starting insight derivation",
                    transcript_length=len(transcript_content),
                    topics=len(topics),
                    decisions=len(decisions))

        if not transcript_content.strip():
            raise AgentProcessingError("Cannot derive insights from empty transcript")

        prompt = self._build_insight_prompt(transcript_content, topics, decisions)
        raw_response = self._call_claude(prompt, self._build_system_prompt())
        insights = self._parse_insights(raw_response)

        logger.info(f"[{self.agent_name}] Derived {len(insights)} insights")
        for i, insight in enumerate(insights, 1):
            logger.debug(f"[{self.agent_name}]   {i}. {self._truncate_for_log(insight, 150)}")

        return insights

    def _build_system_prompt(self) -> str:
        """Build the system prompt for Claude."""
        return f"""You are an expert meeting analyst.

Identify {settings.insights_min_count}-{settings.insights_max_count} insights about the meeting: patterns, risks,
open questions, notable dynamics or implications of what was decided.
Each insight is one complete, clear sentence.

Return ONLY a JSON array of strings, for example:
["First insight.", "Second insight.", "Third insight."]"""

    def _build_insight_prompt(self, transcript_content: str, topics: List[str], decisions: List[str]) -> str:
        """
        Build the prompt for deriving insights.

        Args:
            transcript_content: The transcript to analyze
            topics: Extracted topics for context
            decisions: Extracted decisions for context

        Returns:
            Formatted prompt string
        """
        transcript_content = self._truncate_transcript(transcript_content)

        topic_lines = "\n".join(f"- {topic}" for topic in topics) or "- (none)"
        decision_lines = "\n".join(f"- {decision}" for decision in decisions) or "- (none)"

        return f"""Analyze this meeting and derive key insights.

TOPICS DISCUSSED:
{topic_lines}

DECISIONS MADE:
{decision_lines}

TRANSCRIPT:
{transcript_content}

INSIGHTS (JSON array):"""

    def _parse_insights(self, raw_response: str) -> List[str]:
        """
        Parse and validate the insight list from Claude's response.

        Args:
            raw_response: Raw response text from Claude

        Returns:
            List of cleaned insight strings
        """
        payload = self._parse_json(raw_response)

        if not isinstance(payload, list):
            raise MalformedResponseError(
                f"Expected a JSON array of insights, got {type(payload).__name__}"
            )
        if not all(isinstance(item, str) for item in payload):
            raise MalformedResponseError("Every insight must be a string")

        insights = [item.strip() for item in payload if item.strip()]

        if len(insights) < settings.insights_min_count or len(insights) > settings.insights_max_count:
            logger.warning(f"[{self.agent_name}] Insight count outside target range",
                           count=len(insights),
                           min_count=settings.insights_min_count,
                           max_count=settings.insights_max_count)

        if len(insights) > settings.insights_max_count:
            insights = insights[:settings.insights_max_count]

        return insights
