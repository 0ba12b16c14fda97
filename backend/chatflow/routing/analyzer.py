"""Query complexity analyzer for model-tier routing."""

import re
from typing import List, Pattern

import structlog

from chatflow.config.plans import RoutingTier
from chatflow.routing.models import ComplexityAnalysis, ComplexityMetrics

logger = structlog.get_logger()


def _phrase_regex(phrases: List[str]) -> Pattern[str]:
    """Match any phrase as whole words."""
    alternatives = "|".join(re.escape(p) for p in phrases)
    return re.compile(r"\b(?:%s)\b" % alternatives)


class QueryAnalyzer:
    """Analyzes queries to determine the routing tier.

    Uses keyword heuristics and surface metrics. Tiers are checked in a
    fixed order (expert, complex, medium, casual) and the first match
    wins; anything else is simple.

    Example:
        ```python
        analyzer = QueryAnalyzer()
        analysis = analyzer.analyze("hello")
        print(analysis.tier)  # RoutingTier.CASUAL
        ```
    """

    CASUAL_INDICATORS: List[str] = [
        "hi", "hello", "hey", "sup", "yo", "namaste", "thanks", "thank you",
        "ok", "okay", "cool", "nice", "great", "awesome", "good morning",
        "good night", "bye", "goodbye", "see you", "ttyl", "brb",
    ]

    SIMPLE_INDICATORS: List[str] = [
        "what is", "who is", "when", "where", "how to", "explain",
        "tell me", "can you", "define", "meaning", "translate",
    ]

    TECHNICAL_TERMS: List[str] = [
        "algorithm", "function", "variable", "database", "api", "framework",
        "deployment", "architecture", "optimization", "integration", "authentication",
        "encryption", "backend", "frontend", "debugging", "testing", "docker",
        "kubernetes", "typescript", "javascript", "python", "sql", "nosql",
    ]

    COMPLEX_INDICATORS: List[str] = [
        "analyze", "compare", "evaluate", "design", "architecture", "strategy",
        "implement", "optimize", "refactor", "debug complex", "performance issue",
        "scalability", "best practices", "trade-offs", "pros and cons",
    ]

    EXPERT_INDICATORS: List[str] = [
        "advanced", "deep dive", "comprehensive", "detailed analysis",
        "system design", "scalable architecture", "enterprise", "production-grade",
        "philosophical", "existential", "psychological", "research",
    ]

    EMOTIONAL_KEYWORDS: List[str] = [
        "feel", "feeling", "emotional", "sad", "happy", "anxious", "worried",
        "depressed", "confused", "frustrated", "excited", "scared", "lonely",
        "love", "relationship", "breakup", "heartbreak", "stress", "anxiety",
    ]

    CODE_PATTERNS: List[Pattern[str]] = [
        re.compile(r"```[\s\S]*?```"),
        re.compile(r"`[^`]+`"),
        re.compile(r"function\s+\w+\s*\("),
        re.compile(r"def\s+\w+\s*\("),
        re.compile(r"const\s+\w+\s*="),
        re.compile(r"let\s+\w+\s*="),
        re.compile(r"class\s+\w+"),
        re.compile(r"import\s+.*from"),
        re.compile(r"export\s+(default|const)"),
        re.compile(r"<\w+[^>]*>"),
        re.compile(r"\{[\s\S]*\}"),
    ]

    QUESTION_PATTERN = re.compile(r"\?|\b(how|what|why|when|where|who)\b", re.IGNORECASE)
    SENTENCE_SPLIT = re.compile(r"[.!?]+")

    def __init__(self) -> None:
        """Initialize the query analyzer."""
        self._casual = _phrase_regex(self.CASUAL_INDICATORS)
        self._simple = _phrase_regex(self.SIMPLE_INDICATORS)
        self._technical = _phrase_regex(self.TECHNICAL_TERMS)
        self._complex = _phrase_regex(self.COMPLEX_INDICATORS)
        self._expert = _phrase_regex(self.EXPERT_INDICATORS)
        self._emotional = _phrase_regex(self.EMOTIONAL_KEYWORDS)

    def analyze(self, query: str) -> ComplexityAnalysis:
        """Analyze a query and return its tier assessment.

        Args:
            query: The user's message

        Returns:
            ComplexityAnalysis with tier, confidence, reasoning and metrics
        """
        normalized = query.lower().strip()
        metrics = self._calculate_metrics(query, normalized)
        tier = self._determine_tier(normalized, metrics)
        confidence = self._calculate_confidence(tier, metrics)
        reasoning = self._generate_reasoning(tier, metrics)

        logger.debug(
            "query_analyzed",
            query=query[:50],
            tier=tier.value,
            confidence=confidence,
            word_count=metrics.word_count,
        )

        return ComplexityAnalysis(
            tier=tier,
            confidence=confidence,
            reasoning=reasoning,
            metrics=metrics,
        )

    def _calculate_metrics(self, query: str, normalized: str) -> ComplexityMetrics:
        """Compute surface metrics."""
        words = normalized.split()
        sentences = [s for s in self.SENTENCE_SPLIT.split(query) if s.strip()]

        return ComplexityMetrics(
            word_count=len(words),
            sentence_count=len(sentences),
            has_code=any(p.search(query) for p in self.CODE_PATTERNS),
            has_questions=bool(self.QUESTION_PATTERN.search(query)),
            has_technical_terms=bool(self._technical.search(normalized)),
            has_emotional_context=bool(self._emotional.search(normalized)),
        )

    def _determine_tier(self, query: str, metrics: ComplexityMetrics) -> RoutingTier:
        """Pick the first tier whose rule matches."""
        if self._should_use_expert(query, metrics):
            return RoutingTier.EXPERT
        if self._should_use_complex(query, metrics):
            return RoutingTier.COMPLEX
        if self._should_use_medium(query, metrics):
            return RoutingTier.MEDIUM
        if self._should_use_casual(query, metrics):
            return RoutingTier.CASUAL
        return RoutingTier.SIMPLE

    def _should_use_expert(self, query: str, metrics: ComplexityMetrics) -> bool:
        if metrics.has_emotional_context and metrics.word_count > 30:
            return True
        if self._expert.search(query):
            return True
        return metrics.word_count > 100

    def _should_use_complex(self, query: str, metrics: ComplexityMetrics) -> bool:
        if metrics.word_count > 50:
            return True
        if self._complex.search(query):
            return True
        if metrics.has_code and metrics.has_technical_terms and metrics.sentence_count >= 2:
            return True
        return "design" in query or "architecture" in query

    def _should_use_medium(self, query: str, metrics: ComplexityMetrics) -> bool:
        if 15 <= metrics.word_count <= 50 and (metrics.has_technical_terms or metrics.has_code):
            return True
        if metrics.sentence_count >= 2 and metrics.has_questions:
            return True
        return bool(self._simple.search(query)) and metrics.word_count > 10

    def _should_use_casual(self, query: str, metrics: ComplexityMetrics) -> bool:
        if metrics.word_count == 1:
            return True
        return metrics.word_count <= 3 and bool(self._casual.search(query))

    @staticmethod
    def _calculate_confidence(tier: RoutingTier, metrics: ComplexityMetrics) -> float:
        """Confidence grows with how extreme the metrics are."""
        confidence = 0.5

        if tier == RoutingTier.CASUAL:
            if metrics.word_count <= 2:
                confidence = 0.95
            elif metrics.word_count <= 5:
                confidence = 0.80
        elif tier == RoutingTier.SIMPLE:
            if 5 <= metrics.word_count <= 15:
                confidence = 0.75
        elif tier == RoutingTier.MEDIUM:
            if metrics.has_technical_terms or metrics.has_code:
                confidence = 0.80
        elif tier == RoutingTier.COMPLEX:
            if metrics.word_count > 50 or metrics.has_code:
                confidence = 0.85
        elif tier == RoutingTier.EXPERT:
            if metrics.has_emotional_context or metrics.word_count > 100:
                confidence = 0.90

        return min(confidence, 1.0)

    @staticmethod
    def _generate_reasoning(tier: RoutingTier, metrics: ComplexityMetrics) -> str:
        reasons = []

        if metrics.word_count <= 3:
            reasons.append("very short query")
        elif metrics.word_count > 50:
            reasons.append("long detailed query")

        if metrics.has_code:
            reasons.append("contains code")
        if metrics.has_technical_terms:
            reasons.append("technical content")
        if metrics.has_emotional_context:
            reasons.append("emotional context")
        if metrics.has_questions:
            reasons.append("asking questions")

        return f"Selected {tier.value} tier: {', '.join(reasons) or 'standard query'}"

    def get_tier_description(self, tier: RoutingTier) -> str:
        """Get human-readable description of a tier."""
        descriptions = {
            RoutingTier.CASUAL: "Greetings and small talk",
            RoutingTier.SIMPLE: "Short factual questions",
            RoutingTier.MEDIUM: "Technical questions and multi-part asks",
            RoutingTier.COMPLEX: "Analysis, design and code-heavy requests",
            RoutingTier.EXPERT: "Deep research and emotionally sensitive conversations",
        }
        return descriptions.get(tier, "Unknown tier")
