from __future__ import annotations

import json
from typing import Any

from prodtrack.domain.equality import is_empty
from prodtrack.domain.models import ConflictRecord, ResolutionChoice

MAX_VALUE_CHARS = 200


def format_value(value: Any) -> str:
    if is_empty(value):
        return "(vacío)"
    if isinstance(value, str):
        text = value if value.strip() else repr(value)
    elif isinstance(value, (dict, list, tuple)):
        text = json.dumps(value, ensure_ascii=False, default=str)
    else:
        text = str(value)
    if len(text) > MAX_VALUE_CHARS:
        return f"{text[: MAX_VALUE_CHARS - 1]}…"
    return text


def build_what_happened(conflict: ConflictRecord) -> str:
    return (
        f"Registro: {conflict.entity_id}\n"
        f"Campo: {conflict.field_id}\n"
        "Otra persona guardó un valor distinto mientras editabas."
    )


def build_three_way_diff(conflict: ConflictRecord) -> str:
    return (
        f"Valor al empezar a editar: {format_value(conflict.original_value)}\n"
        f"Valor actual en la hoja: {format_value(conflict.current_value)}\n"
        f"Tu valor: {format_value(conflict.new_value)}"
    )


def recommended_choice(conflict: ConflictRecord) -> ResolutionChoice:
    # Si el valor remoto ya es el nuestro no hay nada que pisar.
    if format_value(conflict.current_value) == format_value(conflict.new_value):
        return ResolutionChoice.KEEP_SERVER
    return ResolutionChoice.EDIT_AGAIN


CHOICE_LABELS = {
    ResolutionChoice.OVERWRITE: "Sobrescribir con mi valor",
    ResolutionChoice.KEEP_SERVER: "Mantener el valor de la hoja",
    ResolutionChoice.EDIT_AGAIN: "Volver a editar",
}


def choice_label(choice: ResolutionChoice) -> str:
    return CHOICE_LABELS[choice]
