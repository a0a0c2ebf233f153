"""
Language detection and phrase translation.

Detection is script based: Devanagari text is Hindi, Tamil script is
Tamil, anything else keeps the user's stored preference. Translation is
a phrase dictionary, enough to localize the fixed parts of a response.
"""

import re


ENGLISH = "en-IN"
HINDI = "hi-IN"
TAMIL = "ta-IN"

DEVANAGARI = re.compile(r"[ऀ-ॿ]")
TAMIL_SCRIPT = re.compile(r"[஀-௿]")

# Longer phrases first; "Your expenses" must be replaced before "expenses"
PHRASES: dict[str, list[tuple[str, str]]] = {
    HINDI: [
        ("Based on your data", "आपके डेटा के आधार पर"),
        ("Your total income", "आपकी कुल आय"),
        ("You spent", "आपने खर्च किया"),
        ("and saved", "और बचाया"),
        ("Your expenses", "आपके खर्च"),
        ("savings rate", "बचत दर"),
        ("per month", "प्रति माह"),
        ("Here's your", "यहाँ आपका"),
        ("monthly report", "मासिक रिपोर्ट"),
        ("I can help", "मैं मदद कर सकता हूँ"),
        ("Please ask", "कृपया पूछें"),
        ("You're saving", "आप बचा रहे हैं"),
        ("Your savings", "आपकी बचत"),
        ("expenses", "खर्च"),
        ("income", "आय"),
    ],
    TAMIL: [
        ("Based on your data", "உங்கள் தரவுகளின் அடிப்படையில்"),
        ("Your total income", "உங்கள் மொத்த வருமானம்"),
        ("You spent", "நீங்கள் செலவழித்தீர்கள்"),
        ("and saved", "மற்றும் சேமித்தீர்கள்"),
        ("Your expenses", "உங்கள் செலவுகள்"),
        ("savings rate", "சேமிப்பு விகிதம்"),
        ("per month", "மாதத்திற்கு"),
        ("Here's your", "இங்கே உங்கள்"),
        ("monthly report", "மாதாந்திர அறிக்கை"),
        ("I can help", "நான் உதவ முடியும்"),
        ("Please ask", "தயவுசெய்து கேளுங்கள்"),
        ("You're saving", "நீங்கள் சேமிக்கிறீர்கள்"),
        ("Your savings", "உங்கள் சேமிப்பு"),
        ("expenses", "செலவுகள்"),
        ("income", "வருமானம்"),
    ],
}


def detect_language(text: str, default: str = ENGLISH) -> str:
    """Language code for `text`; `default` when the script is not recognized."""
    if not text:
        return default
    if DEVANAGARI.search(text):
        return HINDI
    if TAMIL_SCRIPT.search(text):
        return TAMIL
    return default


def translate_response(text: str, language: str) -> str:
    """Replace known English phrases. Unknown languages return `text` unchanged."""
    phrases = PHRASES.get(language)
    if not text or not phrases:
        return text

    translated = text
    for english, local in phrases:
        translated = re.sub(re.escape(english), local, translated, flags=re.IGNORECASE)
    return translated
