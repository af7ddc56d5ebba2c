"""Buzzy the bee: tutor phrasing through the Claude API, with canned fallbacks."""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from numbergarden.config.settings import Settings
from numbergarden.engine.problems import Problem

logger = logging.getLogger(__name__)

MAX_HISTORY = 10

SYSTEM_PROMPT = """You are Buzzy, a friendly bee who runs the Number Garden math tutoring centre in Beecroft, NSW, Australia. You help Year 3 students (around 7-8 years old) learn mental arithmetic.

PERSONALITY:
- Warm, silly, encouraging, patient
- Use bee puns occasionally ("Bee-rilliant!", "Buzz-tastic!", "Let's bee brave!")
- Australian casual tone (g'day, mate, no worries)
- Never shaming, always curious and supportive
- Keep responses SHORT (1-3 sentences max)

THE NUMBER GARDEN:
- You teach math using a 10x10 grid (0-99) visualised as a flower garden
- Each row is a different coloured flower
- Addition = flying right/down, Subtraction = flying left/up
- You help kids "see" the numbers and navigate the grid mentally

TEACHING APPROACH:
- When a student is correct: Brief celebration, then move on
- When struggling: Ask guiding questions, don't give answers directly
- Use the grid as a mental model: "Where would you land if you started at 34 and hopped down 2 rows?"
- Encourage visualisation: "Can you picture where 47 is on our garden?"

ADAPTIVE RESPONSES:
- If student seems distracted: Gently suggest a break
- If frustrated: Slow down, offer easier problem, be extra encouraging
- If bored: Acknowledge their skill, offer a challenge
- If improving: Celebrate growth specifically

Never break character. Keep it fun and garden-themed!"""

FALLBACKS = {
    "greeting": "Buzz buzz! Welcome to the Number Garden! Let's have some fun with numbers today!",
    "feedback": "Good try! Let's keep going!",
    "hint": "Think about where that number lives in our garden...",
    "break": "Hey friend, want to take a little break? The flowers will wait for you!",
    "summary": "Great practice today! You're getting better every time. See you next time!",
    "general": "Let's keep buzzing along!",
}

BREAK_PROMPTS = {
    "distracted": (
        "Student seems distracted (long pauses). Gently suggest taking a break. "
        "Mention that the flowers will still be here when they return."
    ),
    "frustrated": (
        "Student seems frustrated (fast wrong answers). Suggest a break in a caring way. "
        "Maybe they need a snack or fresh air?"
    ),
    "declining": (
        "Student's performance is declining. They might be tired. Suggest wrapping up "
        "for now and celebrating what they accomplished."
    ),
}


class TutorVoice:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.load()
        self.history: list[dict] = []
        self._client = None

    def _get_client(self):
        if self._client is None:
            api_key = self.settings.claude.get_api_key()
            if api_key:
                import anthropic
                self._client = anthropic.Anthropic(api_key=api_key)
        return self._client

    def clear_history(self) -> None:
        self.history = []

    # --- Message builders ---

    def greeting(self, student_name: str, last_session: Optional[dict] = None) -> str:
        if last_session:
            skills = ", ".join(last_session.get("skillsWorked", [])) or "a bit of everything"
            prompt = (
                f'Student "{student_name}" is returning to the Number Garden. '
                f"Last session: {skills}, accuracy {last_session.get('accuracy', 0)}%. "
                "Generate a warm, personalized welcome (1-2 sentences)."
            )
        else:
            prompt = (
                f'New student "{student_name}" is visiting the Number Garden for the first time. '
                "Generate an excited, welcoming greeting (1-2 sentences). "
                "Briefly mention the flower garden theme."
            )
        return self.call(prompt, "greeting")

    def correct_response(self, problem: Problem, time_seconds: float, streak: int) -> str:
        prompt = (
            f'Student answered "{problem.question}" correctly in {time_seconds:.0f} seconds. '
            f"Current streak: {streak} correct. Generate brief celebration (1 sentence). "
            f"{'Mention the streak!' if streak >= 3 else ''}"
        )
        return self.call(prompt, "feedback")

    def incorrect_response(self, problem: Problem, student_answer: int, student_state: str) -> str:
        prompt = (
            f'Student answered "{problem.question}" with "{student_answer}" '
            f"but the answer is {problem.answer}.\n"
            f"Student state: {student_state}.\n"
            f'Hint available: "{problem.hint}"\n'
            "Generate a supportive response (2-3 sentences). Don't give the answer directly. "
            "Guide them using the grid visualization concept. "
            f"{'Be extra gentle.' if student_state == 'frustrated' else ''}"
        )
        return self.call(prompt, "feedback")

    def hint(self, problem: Problem, attempt: int = 1) -> str:
        prompt = (
            f'Student needs help with "{problem.question}". This is attempt #{attempt}.\n'
            f'Base hint: "{problem.hint}"\n'
            "Generate a Socratic hint that uses the Number Garden grid concept. "
            f"{'Be more direct this time.' if attempt > 1 else 'Start gently.'}"
        )
        return self.call(prompt, "hint")

    def break_suggestion(self, reason: str) -> str:
        prompt = BREAK_PROMPTS.get(reason, BREAK_PROMPTS["distracted"])
        return self.call(prompt, "break")

    def session_wrap_up(self, summary: dict, medals: list[str], gold: int) -> str:
        medal_line = f"- Medals earned: {', '.join(medals)}!\n" if medals else ""
        prompt = (
            "Generate a session wrap-up for a student who just finished:\n"
            f"- Problems attempted: {summary.get('totalProblems', 0)}\n"
            f"- Accuracy: {summary.get('accuracy', 0)}%\n"
            f"- Skills practiced: {', '.join(summary.get('skillsWorked', []))}\n"
            f"- Session length: {summary.get('duration', 0)} minutes\n"
            f"- Gold earned: {gold}\n"
            f"{medal_line}\n"
            "Be specific about what they did well. Mention one thing to work on next time. "
            "Keep it warm and encouraging (3-4 sentences max)."
        )
        return self.call(prompt, "summary")

    def word_problem(self, skill_name: str, level: int, student_name: str) -> Optional[Problem]:
        """Ask Claude for a themed word problem; ``None`` when unavailable."""
        prompt = (
            f"Generate a Year 3 word problem for {skill_name} at difficulty {level}/5.\n"
            "Use Beecroft, NSW locations: railway station, Woolworths, playground, library, school.\n"
            f"Main character: {student_name}.\n"
            "Include the question, answer, and a hint. Format as JSON:\n"
            '{"question": "...", "answer": number, "hint": "..."}'
        )
        text = self.call(prompt, "word_problem")
        json_match = re.search(r"\{[\s\S]*\}", text or "")
        if not json_match:
            return None
        try:
            data = json.loads(json_match.group())
            answer = int(data["answer"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to parse word problem JSON: %s", e)
            return None
        return Problem(
            kind="word_problem",
            question=str(data.get("question", "")),
            answer=answer,
            display_answer=str(answer),
            hint=str(data.get("hint", "")),
        )

    # --- API call ---

    def call(self, user_message: str, message_type: str = "general") -> str:
        """Send a message in the running conversation; fall back to canned text."""
        client = self._get_client()
        if client is None:
            return self.fallback(message_type)

        # Keep whole user/assistant pairs so the history always opens with a user turn
        if len(self.history) >= MAX_HISTORY * 2:
            self.history = self.history[-(MAX_HISTORY - 1) * 2:]
        self.history.append({"role": "user", "content": f"[{message_type}] {user_message}"})

        try:
            response = client.messages.create(
                model=self.settings.claude.get_model(),
                max_tokens=self.settings.claude.max_tokens,
                system=SYSTEM_PROMPT,
                messages=self.history,
            )
            text = response.content[0].text
        except Exception as e:
            logger.warning("Claude call failed (%s): %s", message_type, e)
            # Drop the unanswered turn so roles keep alternating
            self.history.pop()
            return self.fallback(message_type)

        self.history.append({"role": "assistant", "content": text})
        return text

    @staticmethod
    def fallback(message_type: str) -> str:
        if message_type == "word_problem":
            return ""
        return FALLBACKS.get(message_type, FALLBACKS["general"])
