from __future__ import annotations

import pytest

from prodtrack.core.errors import UserCancelledError
from prodtrack.domain.models import ConflictRecord, ResolutionChoice


def _conflict() -> ConflictRecord:
    return ConflictRecord("shot_001", "title", "Opening Scene", "Changed Elsewhere", "Updated Scene")


def test_dialogo_muestra_los_tres_valores(qapp) -> None:
    from prodtrack.ui.conflict_dialog import ConflictResolutionDialog

    dialog = ConflictResolutionDialog(_conflict())

    assert dialog.original_view.toPlainText() == "Opening Scene"
    assert dialog.current_view.toPlainText() == "Changed Elsewhere"
    assert dialog.new_view.toPlainText() == "Updated Scene"
    assert set(dialog.buttons) == set(ResolutionChoice)
    assert dialog.choice is None


def test_pulsar_un_boton_fija_la_opcion(qapp) -> None:
    from prodtrack.ui.conflict_dialog import ConflictResolutionDialog

    dialog = ConflictResolutionDialog(_conflict())

    dialog.buttons[ResolutionChoice.KEEP_SERVER].click()

    assert dialog.choice is ResolutionChoice.KEEP_SERVER


def test_handler_devuelve_la_opcion_elegida(qapp) -> None:
    from prodtrack.ui.conflict_dialog import ConflictResolutionDialog, DialogResolutionHandler

    class _AutoDialog(ConflictResolutionDialog):
        def exec(self) -> int:
            self.choose(ResolutionChoice.OVERWRITE)
            return 1

    handler = DialogResolutionHandler(dialog_factory=_AutoDialog)

    assert handler(_conflict()) is ResolutionChoice.OVERWRITE


def test_handler_cerrar_sin_elegir_cancela(qapp) -> None:
    from prodtrack.ui.conflict_dialog import ConflictResolutionDialog, DialogResolutionHandler

    class _ClosedDialog(ConflictResolutionDialog):
        def exec(self) -> int:
            self.reject()
            return 0

    with pytest.raises(UserCancelledError):
        DialogResolutionHandler(dialog_factory=_ClosedDialog)(_conflict())
