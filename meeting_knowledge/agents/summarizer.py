"""
AI agent for generating meeting summaries.
Creates concise 2-3 sentence summaries of meeting transcripts.
"""

import re

from meeting_knowledge.agents.base_agent import BaseAgent, AgentProcessingError, MalformedResponseError
from meeting_knowledge.config import get_settings
from meeting_knowledge.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

_SENTENCE_END = re.compile(r"[.!?](?:\s|$)")


class SummarizerAgent(BaseAgent):
    """
    AI agent that generates concise summaries of meeting transcripts.

    Creates a short summary that states what the meeting was about and
    what came out of it.
    """

    def process(self, transcript_content: str, **kwargs) -> str:
        """
        Generate a summary of the meeting transcript.

        Args:
            transcript_content: The raw transcript text to summarize
            **kwargs: Additional parameters (unused)

        Returns:
            The cleaned summary text

        Raises:
            AgentProcessingError: If summarization fails
            MalformedResponseError: If Claude returns an empty summary
        """
        logger.info(f"[{self.agent_name}] Starting summarization of transcript",
                    transcript_length=len(transcript_content),
                    word_count=len(transcript_content.split()))

        if not transcript_content.strip():
            raise AgentProcessingError("Cannot summarize empty transcript")

        prompt = self._build_summarization_prompt(transcript_content)
        raw_summary = self._call_claude(prompt, self._build_system_prompt())
        summary = self._clean_summary(raw_summary)

        if not summary:
            raise MalformedResponseError("Claude returned an empty summary")

        sentence_count = self._count_sentences(summary)
        if sentence_count < settings.summary_min_sentences or sentence_count > settings.summary_max_sentences:
            logger.warning(f"[{self.agent_name}] Summary sentence count outside target range",
                           sentence_count=sentence_count,
                           min_sentences=settings.summary_min_sentences,
                           max_sentences=settings.summary_max_sentences)

        logger.info(f"[{self.agent_name}] Generated summary successfully",
                    sentence_count=sentence_count,
                    summary_preview=self._truncate_for_log(summary, 100))

        return summary

    def _build_system_prompt(self) -> str:
        """Build the system prompt for Claude."""
        return f"""You are an expert at writing concise, professional summaries of business meetings.

Your summary:
- Is {settings.summary_min_sentences}-{settings.summary_max_sentences} sentences long
- States the purpose of the meeting and the main outcomes
- Is written in plain, neutral language
- Contains only the summary text, with no heading or preamble"""

    def _build_summarization_prompt(self, transcript_content: str) -> str:
        """
        Build the prompt for summarizing the transcript.

        Args:
            transcript_content: The transcript to summarize

        Returns:
            Formatted prompt string
        """
        transcript_content = self._truncate_transcript(transcript_content)

        return f"""Summarize the following meeting transcript in {settings.summary_min_sentences}-{settings.summary_max_sentences} sentences.

TRANSCRIPT:
{transcript_content}

SUMMARY:"""

    def _clean_summary(self, raw_summary: str) -> str:
        """
        Clean and format the generated summary.

        Args:
            raw_summary: Raw summary text from Claude

        Returns:
            Cleaned summary text
        """
        summary = raw_summary.strip()

        prefixes_to_remove = [
            "Summary:",
            "SUMMARY:",
            "Meeting Summary:",
            "Meeting summary:",
        ]

        for prefix in prefixes_to_remove:
            if summary.startswith(prefix):
                summary = summary[len(prefix):].strip()
                break

        if summary and not summary[0].isupper():
            summary = summary[0].upper() + summary[1:]

        summary = re.sub(r'\s+', ' ', summary)

        return summary

    def _count_sentences(self, summary: str) -> int:
        """Count sentence terminators in the summary (at least one for non-empty text)."""
        return max(1, len(_SENTENCE_END.findall(summary)))
