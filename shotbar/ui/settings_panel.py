"""Settings form.

Edits are written to the settings store immediately. The engine only
sees them through the snapshot taken at the next Start.
"""

from typing import Optional

from PySide6.QtCore import Signal, Slot
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QWidget,
)

from shotbar.core.constants import MAX_COUNT_LIMIT
from shotbar.core.model import ArrowKey, DuplicateStrategy, RunConfig
from shotbar.core.settings import SettingsStore, load_run_config, save_run_config

from .sounds import SOUND_CHOICES


class SettingsPanel(QWidget):
    """Form for every run setting."""

    settings_changed = Signal()

    def __init__(self, store: SettingsStore, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._store = store
        self._loading = False

        self._setup_ui()
        self.load()
        self._connect_signals()

    def _setup_ui(self) -> None:
        form = QFormLayout(self)

        self._key_combo = QComboBox()
        for key in ArrowKey:
            self._key_combo.addItem(key.display_name, key)
        form.addRow("Key:", self._key_combo)

        self._max_count = QSpinBox()
        self._max_count.setRange(1, MAX_COUNT_LIMIT)
        form.addRow("Max shots:", self._max_count)

        self._initial_delay = QDoubleSpinBox()
        self._initial_delay.setRange(0.0, 600.0)
        self._initial_delay.setDecimals(1)
        self._initial_delay.setSuffix(" s")
        form.addRow("Initial delay:", self._initial_delay)

        self._interval = QDoubleSpinBox()
        self._interval.setRange(0.0, 600.0)
        self._interval.setDecimals(1)
        self._interval.setSingleStep(0.5)
        self._interval.setSuffix(" s")
        form.addRow("Interval:", self._interval)

        folder_row = QHBoxLayout()
        self._folder_edit = QLineEdit()
        self._folder_edit.setPlaceholderText("Desktop")
        self._browse_btn = QPushButton("Browse…")
        folder_row.addWidget(self._folder_edit, 1)
        folder_row.addWidget(self._browse_btn)
        form.addRow("Save folder:", folder_row)

        self._auto_folder = QCheckBox("Create a timestamped folder per run")
        form.addRow("", self._auto_folder)

        self._prefix_edit = QLineEdit()
        self._prefix_edit.setPlaceholderText("capture")
        form.addRow("File prefix:", self._prefix_edit)

        self._detect_duplicate = QCheckBox("Stop when the screen stops changing")
        form.addRow("", self._detect_duplicate)

        self._strategy_combo = QComboBox()
        self._strategy_combo.addItem("Exact match", DuplicateStrategy.EXACT)
        self._strategy_combo.addItem("Similarity", DuplicateStrategy.SIMILARITY)
        form.addRow("Comparison:", self._strategy_combo)

        self._threshold = QDoubleSpinBox()
        self._threshold.setRange(0.0, 1.0)
        self._threshold.setDecimals(3)
        self._threshold.setSingleStep(0.005)
        form.addRow("Similarity threshold:", self._threshold)

        self._countdown_sound = QComboBox()
        self._countdown_sound.setEditable(True)
        self._countdown_sound.addItems(SOUND_CHOICES)
        form.addRow("Countdown sound:", self._countdown_sound)

        self._completion_sound = QComboBox()
        self._completion_sound.setEditable(True)
        self._completion_sound.addItems(SOUND_CHOICES)
        form.addRow("Completion sound:", self._completion_sound)

    def _connect_signals(self) -> None:
        self._browse_btn.clicked.connect(self._on_browse)

        for combo in (self._key_combo, self._strategy_combo):
            combo.currentIndexChanged.connect(self._on_changed)
        for combo in (self._countdown_sound, self._completion_sound):
            combo.currentTextChanged.connect(self._on_changed)
        for spin in (self._max_count, self._initial_delay, self._interval, self._threshold):
            spin.valueChanged.connect(self._on_changed)
        for edit in (self._folder_edit, self._prefix_edit):
            edit.editingFinished.connect(self._on_changed)
        for check in (self._auto_folder, self._detect_duplicate):
            check.toggled.connect(self._on_changed)

        self._detect_duplicate.toggled.connect(self._update_enabled)

    def load(self) -> None:
        """Fill the form from the store."""
        config = load_run_config(self._store)
        self._loading = True
        try:
            self._key_combo.setCurrentIndex(self._key_combo.findData(config.advance_key))
            self._max_count.setValue(config.max_iterations)
            self._initial_delay.setValue(config.initial_delay)
            self._interval.setValue(config.interval)
            self._folder_edit.setText(config.save_folder)
            self._auto_folder.setChecked(config.auto_create_folder)
            self._prefix_edit.setText(config.filename_prefix)
            self._detect_duplicate.setChecked(config.detect_duplicate)
            self._strategy_combo.setCurrentIndex(
                self._strategy_combo.findData(config.duplicate_strategy)
            )
            self._threshold.setValue(config.duplicate_threshold)
            self._countdown_sound.setCurrentText(config.countdown_sound)
            self._completion_sound.setCurrentText(config.completion_sound)
        finally:
            self._loading = False
        self._update_enabled()

    def current_config(self) -> RunConfig:
        """Config as currently shown in the form."""
        return RunConfig(
            advance_key=self._key_combo.currentData(),
            max_iterations=self._max_count.value(),
            initial_delay=self._initial_delay.value(),
            interval=self._interval.value(),
            detect_duplicate=self._detect_duplicate.isChecked(),
            duplicate_threshold=self._threshold.value(),
            duplicate_strategy=self._strategy_combo.currentData(),
            save_folder=self._folder_edit.text().strip(),
            auto_create_folder=self._auto_folder.isChecked(),
            filename_prefix=self._prefix_edit.text().strip(),
            countdown_sound=self._countdown_sound.currentText(),
            completion_sound=self._completion_sound.currentText(),
        )

    def set_editable(self, editable: bool) -> None:
        """Lock the form while a run is active."""
        for child in self.findChildren(QWidget):
            child.setEnabled(editable)
        if editable:
            self._update_enabled()

    @Slot()
    def _on_changed(self) -> None:
        if self._loading:
            return
        save_run_config(self._store, self.current_config())
        self.settings_changed.emit()

    @Slot()
    def _on_browse(self) -> None:
        folder = QFileDialog.getExistingDirectory(
            self, "Choose save folder", self._folder_edit.text()
        )
        if folder:
            self._folder_edit.setText(folder)
            self._on_changed()

    @Slot()
    def _update_enabled(self) -> None:
        enabled = self._detect_duplicate.isChecked()
        self._strategy_combo.setEnabled(enabled)
        self._threshold.setEnabled(enabled)
