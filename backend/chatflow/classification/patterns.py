"""Pattern catalogs for conflict classification and hard blocking.

Patterns are matched against the original message (case-insensitive);
keywords are matched as substrings of the lower-cased message. Messages
are often Hinglish, so both English and Hindi phrasings are listed.
"""

import re
from typing import Dict, Tuple

from chatflow.classification.models import (
    ConflictCategory,
    ConflictPattern,
    ConflictSeverity,
    HarmCategory,
    SuggestedAction,
    UserIntent,
)

_I = re.IGNORECASE


CONFLICT_PATTERNS: Tuple[ConflictPattern, ...] = (
    ConflictPattern(
        category=ConflictCategory.TONE_COMPLAINT,
        priority=50,
        patterns=(
            re.compile(r"mai.*tera.*yaar.*nahi", _I),
            re.compile(r"don'?t call me (yaar|bro|dude|buddy)", _I),
            re.compile(r"stop calling me", _I),
            re.compile(r"(kyu|why) (bol raha|calling|saying)", _I),
            re.compile(r"don'?t be so (casual|informal)", _I),
            re.compile(r"too (casual|friendly)", _I),
        ),
        keywords=("yaar nahi", "bro nahi", "don't call", "stop calling", "too casual"),
        severity=ConflictSeverity.MEDIUM,
        intent=UserIntent.GENUINE,
    ),
    ConflictPattern(
        category=ConflictCategory.STYLE_ADJUSTMENT,
        priority=40,
        patterns=(
            re.compile(r"(stop|don'?t) be(ing)? (so )?(formal|serious)", _I),
            re.compile(r"be more (casual|chill|relaxed)", _I),
            re.compile(r"(itna|too much|too) formal", _I),
            re.compile(r"chill (kar|karo|out)", _I),
            re.compile(r"lighten up", _I),
        ),
        keywords=("too formal", "be casual", "chill kar", "lighten up", "stop being formal"),
        severity=ConflictSeverity.LOW,
        intent=UserIntent.PLAYFUL,
    ),
    ConflictPattern(
        category=ConflictCategory.FACTUAL_CORRECTION,
        priority=30,
        patterns=(
            # Complaint-style corrections
            re.compile(r"(this|that|your answer) is (completely |totally )?(wrong|incorrect)", _I),
            re.compile(r"(no|nahi),? (that'?s|this is) (not|wrong)", _I),
            re.compile(r"you('re| are) (completely |totally |so )?wrong", _I),
            re.compile(r"incorrect (answer|information)", _I),
            re.compile(r"this doesn'?t make sense", _I),
            re.compile(r"galat (hai|answer|baat)", _I),
            # Neutral structural corrections: "X nahi, Y hai", "not X, Y", ...
            re.compile(r"(.+)\s+(nahi|nahin),?\s+(.+)\s+(hai|mein|me|pe|par)\b", _I),
            re.compile(r"(.+)\s+(mein|me|in)\s+(nahi|nahin)\s+(hai)?[,\s]+(.+)\s+(mein|me|in)\s+hai", _I),
            re.compile(r"\bnot\s+(.+),?\s+(.+)", _I),
            re.compile(r"(.+)\s+is\s+in\s+(.+),?\s+not\s+(in\s+)?(.+)", _I),
            re.compile(r"^(nahi|nahin|no),?\s+(.+)", _I),
            re.compile(r"\bactually\s+(.+)\s+(hai|mein|me|in|is)\b", _I),
            re.compile(r"(.+)\s+(hai|is),?\s+(not|nahi|nahin)\s+(.+)", _I),
        ),
        keywords=(
            "is wrong",
            "incorrect",
            "you're wrong",
            "galat hai",
            "doesn't make sense",
            "nahi hai",
            "mein nahi",
            "not in",
            "actually",
        ),
        severity=ConflictSeverity.LOW,
        intent=UserIntent.GENUINE,
    ),
    ConflictPattern(
        category=ConflictCategory.HELPFULNESS_COMPLAINT,
        priority=20,
        patterns=(
            re.compile(r"you('re| are) not (helpful|useful)", _I),
            re.compile(r"(not|koi) help(ful)? (nahi|at all)", _I),
            re.compile(r"\b(useless|waste|bekar)\b", _I),
            re.compile(r"can'?t help me", _I),
            re.compile(r"this (doesn'?t|won'?t) help", _I),
        ),
        keywords=("not helpful", "useless", "bekar", "can't help", "won't help"),
        severity=ConflictSeverity.HIGH,
        intent=UserIntent.GENUINE,
    ),
    ConflictPattern(
        category=ConflictCategory.IDENTITY_CHALLENGE,
        priority=10,
        patterns=(
            re.compile(r"are you (chatgpt|gpt|claude|gemini|llama)", _I),
            re.compile(r"which (model|ai|llm)", _I),
            re.compile(r"(powered by|using) (chatgpt|claude|gemini)", _I),
            re.compile(r"you('re| are) just (an )?(ai|bot|chatbot)", _I),
            re.compile(r"reveal (your|the) (model|system|prompt)", _I),
        ),
        keywords=("are you chatgpt", "which model", "just an ai", "powered by", "reveal"),
        severity=ConflictSeverity.LOW,
        intent=UserIntent.TESTING,
    ),
)


# Intensity cues used for severity escalation
INTENSITY_WORDS: Tuple[str, ...] = (
    "completely",
    "totally",
    "absolutely",
    "extremely",
    "very",
    "so much",
    "really",
    "wtf",
    "seriously",
)
REPEATED_EXCLAMATION = re.compile(r"!{2,}")


ACTION_TABLE: Dict[ConflictCategory, SuggestedAction] = {
    ConflictCategory.IDENTITY_CHALLENGE: SuggestedAction.DEFLECT,
    ConflictCategory.TONE_COMPLAINT: SuggestedAction.ASK_PREFERENCE,
    ConflictCategory.STYLE_ADJUSTMENT: SuggestedAction.ADJUST_IMMEDIATELY,
    ConflictCategory.FACTUAL_CORRECTION: SuggestedAction.ACKNOWLEDGE,
    ConflictCategory.HELPFULNESS_COMPLAINT: SuggestedAction.ACKNOWLEDGE,
    ConflictCategory.NONE: SuggestedAction.ACKNOWLEDGE,
}


_PERSON = (
    r"(?:someone|somebody|a person|people|a human|my (?:wife|husband|partner|boyfriend|girlfriend"
    r"|mom|mother|dad|father|brother|sister|son|daughter|boss|neighbou?r|teacher|coworker|friend))"
)
_MINOR = r"(?:an? )?(?:minors?|child|children|kids?|underage (?:girls?|boys?|kids?))"

HARM_PATTERNS: Dict[HarmCategory, Tuple[re.Pattern, ...]] = {
    HarmCategory.SELF_HARM_INCITEMENT: (
        re.compile(r"\b(you should|go) (kill|hurt) yourself\b", _I),
        re.compile(r"\bencourage (me|him|her|them|someone) to (kill|hurt) (myself|himself|herself|themselves)\b", _I),
        re.compile(r"\bbest (way|method)s? to (commit suicide|kill myself)\b", _I),
        re.compile(r"\bsuicide methods\b", _I),
    ),
    HarmCategory.VIOLENT_PLANNING: (
        re.compile(r"\bhow (to|do i|can i) (make|build|assemble) (a )?(bomb|explosive|pipe bomb)\b", _I),
        re.compile(r"\b(plan|planning) (an? )?(attack|shooting|massacre) (on|at)\b", _I),
        re.compile(r"\bhow (to|do i|can i) (kill|murder|poison) %s\b(?!['’]s\b)" % _PERSON, _I),
    ),
    HarmCategory.EXPLOITATION: (
        re.compile(r"\b(sexual|nude|naked) (images?|photos?|pictures?|videos?|content) (of|with|involving) %s\b" % _MINOR, _I),
        re.compile(r"\bsexuali[sz]e %s\b" % _MINOR, _I),
        re.compile(r"\b(child|underage) (porn|pornography|sexual abuse material)\b", _I),
        re.compile(r"\bhow (to|do i|can i) (traffic|smuggle) (a )?(person|people|humans|women|children|girls|boys)\b", _I),
        re.compile(r"\bsell (a )?(person|people|humans|women|children|girls|boys) (into|for) (slavery|prostitution|sex)\b", _I),
    ),
}
