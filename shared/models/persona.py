"""Persona template: the versioned, configurable part of the bot's prompt."""

from string import Template

from pydantic import BaseModel, field_validator


class PersonaTemplate(BaseModel):
    """Everything the bot says or instructs that is not generated.

    system_template is a string.Template with the interpolation points
    $persona_name, $brand and $context. Only $context changes per call.
    inventory_item_template uses $name, $type, $price, $description, $images.
    """

    version: str
    persona_name: str
    brand: str

    system_template: str
    documents_header: str
    inventory_header: str
    inventory_item_template: str
    price_placeholder: str
    description_placeholder: str
    images_placeholder: str

    # synthetic turns used when the model has no system channel
    system_turn_preamble: str
    system_turn_ack: str

    greeting: str
    fallback_reply: str
    empty_reply: str

    @field_validator("system_template")
    @classmethod
    def _has_context_slot(cls, value: str) -> str:
        if "$context" not in value and "${context}" not in value:
            raise ValueError("system_template must contain the $context interpolation point")
        return value

    def render_system_prompt(self, context: str) -> str:
        return Template(self.system_template).safe_substitute(
            persona_name=self.persona_name,
            brand=self.brand,
            context=context,
        )

    def render_inventory_item(self, **fields: str) -> str:
        return Template(self.inventory_item_template).safe_substitute(**fields)
