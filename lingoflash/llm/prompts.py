"""Instruction templates and output field definitions per purpose.

Responsibilities:
- Centralize the system instruction for each purpose type.
- Define the required string fields (and their descriptions) of every
  purpose's structured output, independent of provider wire format.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.datatypes import PurposeType


MNEMONIC_TRIGGER = "mnemonic"


@dataclass(frozen=True, slots=True)
class OutputField:
    """One required string field of a structured provider reply."""

    name: str
    description: str


class PromptLibrary:
    """Build system instructions and output schemas for supported purposes."""

    def system_prompt(self, purpose: PurposeType, learning_goal: str) -> str:
        """Return the system instruction for `purpose`."""

        if purpose is PurposeType.FLASHCARD:
            return (
                "You are a language-learning assistant that writes flashcards. "
                "For the given term or expression, provide a concise definition, a direct "
                "translation, and three natural example sentences in the language of the "
                "term. When asked for a mnemonic, add a short memory aid. "
                f"Tailor the examples to this learning goal: {learning_goal}. "
                "Answer only with the requested JSON fields."
            )
        if purpose is PurposeType.DEFINITION:
            return (
                "You are a helpful assistant that writes clear, concise definitions of "
                "terms and expressions for language learners."
            )
        if purpose is PurposeType.MNEMONIC:
            return (
                "You are a creative assistant that invents short, memorable mnemonics "
                "that help language learners remember the meaning of a term."
            )
        if purpose is PurposeType.EXAMPLES:
            return (
                "You are an assistant that writes three natural example sentences using "
                "a given term, in the same language as the term. "
                f"Tailor the sentences to this learning goal: {learning_goal}."
            )
        # translation and translation_popup share one instruction
        return (
            "You are a translation assistant. Translate the given term or expression "
            "directly and accurately into the requested language."
        )

    def output_fields(
        self,
        purpose: PurposeType,
        user_text: str,
        language: str,
        learning_goal: str,
    ) -> tuple[OutputField, ...]:
        """Return the ordered required fields for `purpose`.

        Flashcards gain a `mnemonic` field only when the outbound user text
        contains the literal substring `mnemonic`.
        """

        if purpose is PurposeType.FLASHCARD:
            fields = [
                OutputField(
                    "definition",
                    f"A clear and concise definition of the term or concept in {language}",
                ),
                OutputField(
                    "translation",
                    f"A direct translation of the term, in {language}.",
                ),
                *self._example_fields(learning_goal, "term or expression"),
            ]
            if MNEMONIC_TRIGGER in user_text:
                fields.append(
                    OutputField(
                        "mnemonic",
                        f"A memory aid to help remember the definition in {language}",
                    )
                )
            return tuple(fields)
        if purpose is PurposeType.EXAMPLES:
            return self._example_fields(learning_goal, "term")
        if purpose is PurposeType.TRANSLATION_POPUP:
            return (
                OutputField("translation", f"A direct translation of the term, in {language}."),
            )
        return (
            OutputField(
                purpose.value,
                f"The {purpose.value} for the term or expression in {language}",
            ),
        )

    @staticmethod
    def schema_name(purpose: PurposeType) -> str:
        """Return the schema name used for OpenAI-like structured output."""

        if purpose is PurposeType.FLASHCARD:
            return "flashcard_response"
        if purpose is PurposeType.EXAMPLES:
            return "examples_response"
        if purpose is PurposeType.TRANSLATION_POPUP:
            return "translation_response"
        return "component_response"

    @staticmethod
    def _example_fields(learning_goal: str, subject: str) -> tuple[OutputField, ...]:
        ordinals = ("First", "Second", "Third")
        return tuple(
            OutputField(
                f"example_{index}",
                f"{ordinal} example sentence using the {subject} in the same language as "
                f"the given term. Consider the learning goal: {learning_goal}",
            )
            for index, ordinal in enumerate(ordinals, start=1)
        )
