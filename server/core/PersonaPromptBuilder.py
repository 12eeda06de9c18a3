from server.core.ContextRetriever import RetrievedContext
from shared.models.conversation import HistoryTurn
from shared.models.persona import PersonaTemplate


class PersonaPromptBuilder:
    """Assembles the persona system prompt and the message list sent to the chat model."""

    def __init__(self, persona: PersonaTemplate) -> None:
        self._persona = persona

    def build_system_prompt(self, context: RetrievedContext) -> str:
        """Interpolate the retrieved knowledge into the persona template.

        A section whose block list is empty is left out together with its header.
        """
        sections: list[str] = []
        if context.document_blocks:
            sections.append(self._persona.documents_header + "\n" + "\n\n".join(context.document_blocks))
        if context.inventory_blocks:
            sections.append(self._persona.inventory_header + "\n" + "\n\n".join(context.inventory_blocks))
        return self._persona.render_system_prompt("\n\n".join(sections))

    def build_messages(
        self,
        system_prompt: str,
        history: list[HistoryTurn],
        query: str,
        native_system_role: bool = True,
    ) -> list[dict]:
        """Build the OpenAI-format message list: system prompt, history oldest-first, new user turn.

        Args:
            system_prompt (str): Output of build_system_prompt().
            history (list[HistoryTurn]): Prior turns, oldest first, without the new user turn.
            query (str): The new user message.
            native_system_role (bool): Send the prompt as a "system" message. When False the
                prompt is injected as a leading user turn plus an in-character acknowledgement.

        Returns:
            list[dict]: Messages with "role" and "content" keys.
        """
        if native_system_role:
            messages = [{"role": "system", "content": system_prompt}]
        else:
            messages = [
                {"role": "user", "content": f"{self._persona.system_turn_preamble}\n\n{system_prompt}"},
                {"role": "assistant", "content": self._persona.system_turn_ack},
            ]
        messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": query})
        return messages
