from __future__ import annotations

from typing import Callable

from PySide6.QtWidgets import (
    QDialog,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from prodtrack.core.errors import UserCancelledError
from prodtrack.domain.models import ConflictRecord, ResolutionChoice
from prodtrack.ui.conflict_guidance import (
    build_what_happened,
    choice_label,
    format_value,
    recommended_choice,
)


class ConflictResolutionDialog(QDialog):
    """Muestra el diff a tres bandas de una celda y deja elegir cómo seguir."""

    def __init__(self, conflict: ConflictRecord, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._conflict = conflict
        self._choice: ResolutionChoice | None = None
        self.setWindowTitle("Conflicto al guardar")
        self.setModal(True)
        self._build_ui()

    @property
    def choice(self) -> ResolutionChoice | None:
        return self._choice

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        title = QLabel("El valor cambió mientras editabas")
        title.setProperty("role", "subtitle")
        layout.addWidget(title)

        self.summary_label = QLabel(build_what_happened(self._conflict))
        self.summary_label.setProperty("role", "secondary")
        self.summary_label.setWordWrap(True)
        layout.addWidget(self.summary_label)

        compare_container = QWidget()
        compare_layout = QGridLayout(compare_container)
        compare_layout.setContentsMargins(0, 0, 0, 0)
        compare_layout.setSpacing(8)
        self.original_view = self._add_value_column(compare_layout, 0, "Al empezar", self._conflict.original_value)
        self.current_view = self._add_value_column(compare_layout, 1, "En la hoja", self._conflict.current_value)
        self.new_view = self._add_value_column(compare_layout, 2, "Tu valor", self._conflict.new_value)
        layout.addWidget(compare_container, 1)

        actions = QHBoxLayout()
        actions.addStretch(1)
        self.buttons: dict[ResolutionChoice, QPushButton] = {}
        recommended = recommended_choice(self._conflict)
        for choice in (ResolutionChoice.OVERWRITE, ResolutionChoice.KEEP_SERVER, ResolutionChoice.EDIT_AGAIN):
            button = QPushButton(choice_label(choice))
            button.setProperty("variant", "primary" if choice is recommended else "secondary")
            button.clicked.connect(self._choose_callback(choice))
            actions.addWidget(button)
            self.buttons[choice] = button
        layout.addLayout(actions)

    @staticmethod
    def _add_value_column(layout: QGridLayout, column: int, label: str, value: object) -> QPlainTextEdit:
        header = QLabel(label)
        header.setProperty("role", "sectionTitle")
        layout.addWidget(header, 0, column)
        view = QPlainTextEdit(format_value(value))
        view.setReadOnly(True)
        layout.addWidget(view, 1, column)
        return view

    def _choose_callback(self, choice: ResolutionChoice) -> Callable[[], None]:
        def _choose() -> None:
            self.choose(choice)

        return _choose

    def choose(self, choice: ResolutionChoice) -> None:
        self._choice = choice
        self.accept()


class DialogResolutionHandler:
    """Callback ``on_conflict`` que abre el diálogo de forma modal."""

    def __init__(
        self,
        parent: QWidget | None = None,
        dialog_factory: Callable[[ConflictRecord, QWidget | None], ConflictResolutionDialog] = ConflictResolutionDialog,
    ) -> None:
        self._parent = parent
        self._dialog_factory = dialog_factory

    def __call__(self, conflict: ConflictRecord) -> ResolutionChoice:
        dialog = self._dialog_factory(conflict, self._parent)
        dialog.exec()
        if dialog.choice is None:
            raise UserCancelledError("Resolución de conflicto cancelada")
        return dialog.choice
