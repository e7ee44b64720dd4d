"""
Syllabus Module
===============
Turn an uploaded exam syllabus into a list of topics and index one
chunk per topic instead of chunking the raw text.

Topics come from the LLM when it returns usable JSON; otherwise a set of
exam-specific line patterns ("Unit 3: Optics", "Paper II: Ethics", ...)
is used as a fallback.
"""

import re
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from langchain_core.prompts import ChatPromptTemplate

from .chunking import TextChunk
from .config import rag_config
from .llm_providers import BaseLLM, LLMError
from .question_generator import parse_json_response

logger = logging.getLogger(__name__)


SYLLABUS_EXTRACTION_PROMPT = """You are reading the official syllabus for the {exam_type} exam.

List every topic a student has to study, in the order the syllabus gives them.

Rules:
- Use the subject and chapter names from the syllabus, spelled correctly
- Format each topic as "SUBJECT - TOPIC NAME" or just "TOPIC NAME", 3 to 100 characters
- Skip the introduction, eligibility rules, dates, addresses, notes and disclaimers
- Skip cover page text, headers and footers
- Do not return empty strings, single filler words or sentences describing the syllabus

Return ONLY a JSON object:
{{
  "topics": ["TOPIC 1", "TOPIC 2"],
  "subtopics": {{"TOPIC 1": ["Subtopic A", "Subtopic B"]}},
  "sections": ["Section 1", "Section 2"]
}}

SYLLABUS:
{syllabus}"""


_INVALID_TOPIC_PATTERNS = [
    re.compile(r"^the\s+(detailed|same|above|following|below)", re.I),
    re.compile(r"^(include|includes|including|for\s+the)", re.I),
    re.compile(r"^(has\s+been|have\s+been|is\s+being)", re.I),
    re.compile(r"^\d+\s*$"),
    re.compile(r"^page\s*\d+", re.I),
    re.compile(r"^(section|unit|chapter)\s*$", re.I),
    re.compile(r"^(a|an|the|in|on|at|to|for|of|with|by)\s*$", re.I),
    re.compile(r"^\s*[-\u2013\u2014:;,.()]\s*$"),
    re.compile(r"uploaded|website|nmc|notification|eligibility", re.I),
    re.compile(r"www\.|http|@|\.(?:com|org|in)\b", re.I),
    re.compile(r"^\d{4}[-/]\d{2}[-/]\d{2}"),
    re.compile(r"phone|email|contact|address|apply", re.I),
]

_SUBJECT_DASH = re.compile(r"^(\w+)\s*-\s*(.+)$", re.I)
_NUMBERED = re.compile(r"^\d+\.\s*([A-Z][^.]+)$", re.I)
_UNIT = re.compile(r"^Unit\s+\d+:?\s*(.+)$", re.I)
_CHAPTER = re.compile(r"^Chapter\s+\d+:?\s*(.+)$", re.I)
_SECTION = re.compile(r"^Section\s+[A-Z]:?\s*(.+)$", re.I)
_PAPER = re.compile(r"^Paper\s+[IVX]+:?\s*(.+)$", re.I)

EXAM_PATTERNS = {
    "NEET": [_SUBJECT_DASH, _NUMBERED, _UNIT],
    "JEE": [_SUBJECT_DASH, _NUMBERED, _CHAPTER],
    "UPSC": [_PAPER, _SUBJECT_DASH, _NUMBERED],
    "default": [_SUBJECT_DASH, _NUMBERED, _UNIT, _CHAPTER, _SECTION],
}

# Extracted text is whitespace-collapsed, so headings are recovered from
# line breaks, sentence ends and "Unit 2" / "3. Optics" style markers
_SEGMENT_BREAK = re.compile(
    r"\s*\n\s*"
    r"|(?<=[a-z][.;])\s+"
    r"|\s+(?=(?:Unit|Chapter|Section|Paper)\s+(?:\d+|[A-Z]\b|[IVX]+\b))"
    r"|\s+(?=\d{1,2}\.\s+[A-Z])"
)


@dataclass
class SyllabusTopics:
    """Topics found in a syllabus and how they were found"""
    topics: List[str] = field(default_factory=list)
    subtopics: Dict[str, List[str]] = field(default_factory=dict)
    sections: List[str] = field(default_factory=list)
    method: str = "patterns"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_valid_topic(topic: Any) -> bool:
    if not isinstance(topic, str):
        return False
    topic = topic.strip()
    if not 3 <= len(topic) <= 150:
        return False
    if len(re.findall(r"[a-zA-Z]", topic)) < 2:
        return False
    return not any(pattern.search(topic) for pattern in _INVALID_TOPIC_PATTERNS)


def filter_topics(topics: List[Any]) -> List[str]:
    """Drop non-topics and duplicates, keeping the first spelling"""
    seen = set()
    valid = []
    for topic in topics:
        if not is_valid_topic(topic):
            if isinstance(topic, str) and topic.strip():
                logger.debug(f"Filtered out invalid topic: {topic[:50]!r}")
            continue
        topic = re.sub(r"\s+", " ", topic.strip())
        if topic.lower() in seen:
            continue
        seen.add(topic.lower())
        valid.append(topic)
    return valid


def split_syllabus_lines(text: str) -> List[str]:
    return [segment.strip(" .;:,") for segment in _SEGMENT_BREAK.split(text or "") if segment.strip(" .;:,")]


def extract_topics_with_patterns(text: str, exam_type: Optional[str] = None) -> List[str]:
    """
    Fallback topic extraction from syllabus headings.

    Args:
        text: Extracted syllabus text
        exam_type: Picks the pattern set (NEET, JEE, UPSC or default)

    Returns:
        Unique topics in order of appearance
    """
    patterns = EXAM_PATTERNS.get((exam_type or "").upper(), EXAM_PATTERNS["default"])
    topics = []
    seen = set()

    for line in split_syllabus_lines(text):
        if len(line) < 5 or len(line) > 100:
            continue
        for pattern in patterns:
            match = pattern.match(line)
            if not match:
                continue
            topic = (match.group(1) or match.group(0)).strip()
            if len(topic) > 3 and topic.lower() not in seen:
                seen.add(topic.lower())
                topics.append(topic)

    return topics[:rag_config.MAX_SYLLABUS_TOPICS]


def build_topic_chunks(topics: List[str], subtopics: Optional[Dict[str, List[str]]] = None) -> List[TextChunk]:
    """One chunk per topic, with its subtopics listed under it"""
    subtopics = subtopics or {}
    chunks = []
    for index, topic in enumerate(topics):
        subs = [str(s).strip() for s in subtopics.get(topic) or [] if str(s).strip()]
        text = f"{topic}\nSubtopics: {', '.join(subs)}" if subs else topic
        chunks.append(TextChunk(
            text=text,
            index=index,
            start_char=0,
            end_char=len(text),
            char_count=len(text),
            word_count=len(text.split()),
        ))
    return chunks


class SyllabusExtractor:
    """Find the topics of a syllabus with the LLM, falling back to patterns"""

    def __init__(self, llm_provider: BaseLLM):
        self._llm_provider = llm_provider
        self.prompt = ChatPromptTemplate.from_template(SYLLABUS_EXTRACTION_PROMPT)

    def set_llm_provider(self, llm_provider: BaseLLM):
        self._llm_provider = llm_provider

    def extract_with_llm(self, text: str, exam_type: Optional[str] = None) -> Optional[SyllabusTopics]:
        """Ask the LLM for topics; None when it fails or returns nothing usable"""
        try:
            messages = self.prompt.format_messages(
                exam_type=exam_type or "competitive",
                syllabus=text[:rag_config.SYLLABUS_CONTEXT_CHARS],
            )
            content = self._llm_provider.generate(messages, json_mode=True)
        except LLMError as e:
            logger.warning(f"Syllabus topic extraction failed: {e}")
            return None

        data = parse_json_response(content)
        if not isinstance(data, dict) or not isinstance(data.get("topics"), list):
            logger.warning("Syllabus topic extraction returned no topic list")
            return None

        topics = filter_topics(data["topics"])[:rag_config.MAX_SYLLABUS_TOPICS]
        if not topics:
            return None
        logger.info(f"Syllabus topics filtered: {len(data['topics'])} -> {len(topics)}")

        raw_subtopics = data.get("subtopics") if isinstance(data.get("subtopics"), dict) else {}
        subtopics = {
            topic: [str(s).strip() for s in raw_subtopics[topic] if str(s).strip()]
            for topic in topics
            if isinstance(raw_subtopics.get(topic), list)
        }
        sections = [str(s).strip() for s in data.get("sections") or [] if isinstance(s, str) and s.strip()]
        return SyllabusTopics(topics=topics, subtopics=subtopics, sections=sections, method="llm")

    def extract(self, text: str, exam_type: Optional[str] = None) -> SyllabusTopics:
        result = self.extract_with_llm(text, exam_type)
        if result is not None:
            return result

        logger.info("Falling back to pattern matching for syllabus topics")
        return SyllabusTopics(topics=extract_topics_with_patterns(text, exam_type), method="patterns")
