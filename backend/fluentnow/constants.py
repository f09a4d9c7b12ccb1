from __future__ import annotations
from typing import Dict, List


# Native display names; passages are requested using these
LANGUAGE_NAMES: Dict[str, str] = {
    "Spanish": "español",
    "French": "français",
    "Italian": "italiano",
    "German": "Deutsch",
    "Portuguese": "português",
    "Dutch": "Nederlands",
    "Russian": "русский",
    "Japanese": "日本語",
    "Korean": "한국어",
    "Chinese (Simplified)": "中文 (简体)",
    "Arabic": "العربية",
    "English": "English",
}

GEMINI_MODELS: Dict[str, str] = {
    "flash-lite": "gemini-2.5-flash-lite-preview-06-17",
    "flash": "gemini-2.5-flash",
    "pro": "gemini-1.5-pro-latest",
}

CEFR_ORDER: List[str] = ["A1", "A2", "B1", "B2", "C1"]

GRADES: List[str] = ["A", "B", "C", "D", "F"]
DEFAULT_GRADE = "C"

STORY_VARIANTS: Dict[str, List[str]] = {
    "daily_life": [
        "morning routine", "grocery shopping", "commuting to work", "weekend activities",
        "cooking dinner", "cleaning house", "watching TV", "reading a book",
    ],
    "travel": [
        "booking a hotel", "at the airport", "ordering food abroad", "asking for directions",
        "visiting museums", "taking photos", "meeting locals", "exploring markets",
    ],
    "food": [
        "cooking a meal", "restaurant dining", "street food adventure", "baking desserts",
        "farmers market visit", "wine tasting", "cooking with friends", "trying new recipes",
    ],
    "friendship": [
        "making new friends", "planning together", "helping each other", "celebrating birthdays",
        "weekend hangouts", "sharing secrets", "group activities", "supporting friends",
    ],
    "work": [
        "job interview", "team meeting", "office lunch", "project deadline",
        "networking event", "presentation day", "remote working", "career change",
    ],
    "shopping": [
        "clothing store visit", "electronics shopping", "market bargaining", "online ordering",
        "gift buying", "window shopping", "sales hunting", "returning items",
    ],
    "health": [
        "doctor visit", "gym workout", "healthy cooking", "wellness routine",
        "mental health care", "medical checkup", "fitness goals", "stress management",
    ],
    "hobbies": [
        "learning instrument", "painting class", "sports practice", "reading club",
        "photography walk", "gardening time", "crafting project", "game night",
    ],
    "family": [
        "family dinner", "holiday gathering", "helping parents", "children playing",
        "family vacation", "visiting relatives", "family traditions", "home projects",
    ],
    "nature": [
        "hiking adventure", "beach day", "camping trip", "garden work",
        "wildlife watching", "mountain climbing", "river rafting", "nature photography",
    ],
    "technology": [
        "learning new app", "video call", "social media", "online learning",
        "tech support", "digital payments", "smart home", "cybersecurity",
    ],
    "education": [
        "language class", "study group", "exam preparation", "university life",
        "skill development", "online courses", "library research", "tutoring session",
    ],
}

THEME_DISPLAY_NAMES: Dict[str, str] = {
    "daily_life": "Daily Life",
    "travel": "Travel & Adventure",
    "food": "Food & Cooking",
    "friendship": "Friendship & Relationships",
    "work": "Work & Career",
    "shopping": "Shopping & Money",
    "health": "Health & Wellness",
    "hobbies": "Hobbies & Entertainment",
    "family": "Family & Home",
    "nature": "Nature & Environment",
    "technology": "Technology & Modern Life",
    "education": "Education & Learning",
    "custom": "Custom Theme",
}

CEFR_SPECS: Dict[str, Dict[str, str]] = {
    "A1": {
        "description": "Complete beginner level",
        "vocabulary": "High frequency words (most common 1000-1500 words), basic nouns, verbs, adjectives. Family, numbers, colors, food, body parts, basic activities (eat, sleep, work, study)",
        "grammar": "Present tense, simple past, basic sentence structures, no subordinate clauses. Simple subject-verb-object patterns only",
        "sentences": "Very short sentences (5-8 words average), simple subject-verb-object structure",
        "complexity": "Single ideas per sentence, no complex connections between ideas, concrete and immediate situations only",
    },
    "A2": {
        "description": "Elementary level",
        "vocabulary": "Common words (2000-2500 words), routine activities, personal information, basic emotions, simple descriptions",
        "grammar": "Present, past, future tenses, basic modal verbs (can, must, should), simple conditionals",
        "sentences": "Short sentences (8-12 words), some compound sentences with 'and', 'but', 'or'",
        "complexity": "Simple connections between ideas, familiar topics, basic cause and effect",
    },
    "B1": {
        "description": "Intermediate level",
        "vocabulary": "Extended vocabulary (3000-4000 words), abstract concepts, opinions, experiences",
        "grammar": "All major tenses, conditional sentences, passive voice, relative clauses",
        "sentences": "Medium length sentences (12-18 words), complex sentences with subordinate clauses",
        "complexity": "Clear connections between ideas, arguments, hypothetical situations, past experiences",
    },
    "B2": {
        "description": "Upper intermediate level",
        "vocabulary": "Wide vocabulary (4000-6000 words), specialized terms, nuanced expressions",
        "grammar": "Advanced structures, subjunctive mood, complex conditionals, advanced passive constructions",
        "sentences": "Longer sentences (15-25 words), sophisticated linking, varied sentence structures",
        "complexity": "Abstract ideas, detailed arguments, implicit meanings, cultural references",
    },
    "C1": {
        "description": "Advanced level",
        "vocabulary": "Extensive vocabulary (6000+ words), idiomatic expressions, sophisticated academic and professional terms",
        "grammar": "All grammatical structures, subtle distinctions, stylistic variations",
        "sentences": "Complex sentences (20+ words), sophisticated discourse markers, varied rhetorical devices",
        "complexity": "Nuanced arguments, cultural subtleties, implicit criticism or praise, sophisticated humor",
    },
}

DEFAULT_PREFERENCES: Dict[str, str] = {
    "sourceLanguage": "Spanish",
    "targetLanguage": "English",
    "difficultyLevel": "A1",
    "theme": "daily_life",
}

CUSTOM_THEME_MIN = 3
CUSTOM_THEME_MAX = 100

CHAT_APOLOGY = "Sorry, I encountered an error. Please try again."
CHAT_WELCOME = (
    "Hello! I'm your AI language learning assistant. I can help you with:\n\n"
    "• Grammar questions\n"
    "• Vocabulary explanations\n"
    "• Translation help\n"
    "• Language learning tips\n\n"
    "What would you like to know?"
)
