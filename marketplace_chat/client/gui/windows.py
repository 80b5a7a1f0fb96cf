"""PyQt window classes for the marketplace messaging GUI."""
from __future__ import annotations

import html
import logging
from typing import Dict, List, Optional

from PyQt6.QtCore import QSize, Qt, pyqtSignal
from PyQt6.QtGui import QCloseEvent, QIcon, QPixmap
from PyQt6.QtWidgets import (
    QApplication,
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QTabWidget,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from ..composer import MessageComposer
from ..config import MAX_MESSAGE_LENGTH
from ..conversations import ConversationListController
from ..models import DateGroup, TranscriptState
from ..schemas import Conversation, Message
from ..transcript import TranscriptController
from .app import MarketplaceController
from .scheduler import QtScheduler
from .styles import (
    ACCENT,
    ACCENT_HOVER,
    BORDER_RADIUS,
    BUBBLE_RECEIVED,
    BUBBLE_SENT,
    ERROR,
    PADDING,
    PRIMARY_BG,
    SIDEBAR_BG,
    SURFACE_BG,
    TEXT_MUTED,
    TEXT_PRIMARY,
    THUMBNAIL_SIZE,
)

logger = logging.getLogger(__name__)

STYLESHEET = (
    f"QWidget {{ background: {PRIMARY_BG}; color: {TEXT_PRIMARY}; }}\n"
    f"QLineEdit, QTextEdit, QListWidget {{ background: {SIDEBAR_BG}; border: 1px solid {SURFACE_BG}; "
    f"border-radius: {BORDER_RADIUS}px; padding: 4px; }}\n"
    f"QPushButton {{ background: {ACCENT}; color: white; padding: 6px 12px; border-radius: {BORDER_RADIUS}px; }}\n"
    f"QPushButton:hover {{ background: {ACCENT_HOVER}; }}\n"
    f"QPushButton:disabled {{ background: {SURFACE_BG}; color: {TEXT_MUTED}; }}"
)


class ServerConfigDialog(QDialog):
    """Dialog used to collect the API server URL on first launch."""

    def __init__(self, parent: QWidget | None = None, prefill: str | None = None):
        super().__init__(parent)
        self.setWindowTitle("Server configuration")
        layout = QFormLayout(self)
        self.url_input = QLineEdit(prefill or "")
        layout.addRow("API URL", self.url_input)
        btn = QPushButton("Save & connect")
        btn.clicked.connect(self.accept)
        layout.addWidget(btn)

    def server_url(self) -> str:
        return self.url_input.text().strip()


class LoginWindow(QMainWindow):
    """Login and registration entry window."""

    logged_in = pyqtSignal()

    def __init__(self, controller: MarketplaceController):
        super().__init__()
        self.controller = controller
        self.setWindowTitle("Marketplace – Sign in")
        self.resize(520, 360)
        self.setStyleSheet(STYLESHEET)
        self._ensure_server_url()
        self._build_ui()

    def _ensure_server_url(self) -> None:
        if not self.controller.base_url:
            dialog = ServerConfigDialog(self, prefill=self.controller.suggested_url)
            if dialog.exec() == QDialog.DialogCode.Accepted and dialog.server_url():
                self.controller.set_base_url(dialog.server_url())
            else:
                self.close()

    def _build_ui(self) -> None:
        tabs = QTabWidget()
        tabs.addTab(self._build_login_tab(), "Login")
        tabs.addTab(self._build_register_tab(), "Register")
        self.setCentralWidget(tabs)

    def _build_login_tab(self) -> QWidget:
        widget = QWidget()
        layout = QFormLayout(widget)
        self.login_username = QLineEdit()
        self.login_password = QLineEdit()
        self.login_password.setEchoMode(QLineEdit.EchoMode.Password)
        layout.addRow("Username", self.login_username)
        layout.addRow("Password", self.login_password)
        self.login_error = QLabel()
        self.login_error.setStyleSheet(f"color: {ERROR}")
        login_btn = QPushButton("Log in")
        login_btn.clicked.connect(self._login)
        self.login_password.returnPressed.connect(self._login)
        layout.addRow(self.login_error)
        layout.addRow(login_btn)
        return widget

    def _build_register_tab(self) -> QWidget:
        widget = QWidget()
        layout = QFormLayout(widget)
        self.reg_username = QLineEdit()
        self.reg_email = QLineEdit()
        self.reg_password = QLineEdit()
        self.reg_password.setEchoMode(QLineEdit.EchoMode.Password)
        self.reg_confirm = QLineEdit()
        self.reg_confirm.setEchoMode(QLineEdit.EchoMode.Password)
        layout.addRow("Username", self.reg_username)
        layout.addRow("Email", self.reg_email)
        layout.addRow("Password", self.reg_password)
        layout.addRow("Confirm", self.reg_confirm)
        self.reg_error = QLabel()
        self.reg_error.setStyleSheet(f"color: {ERROR}")
        reg_btn = QPushButton("Create account")
        reg_btn.clicked.connect(self._register)
        layout.addRow(self.reg_error)
        layout.addRow(reg_btn)
        return widget

    def _login(self) -> None:
        self.login_error.clear()
        try:
            self.controller.login(self.login_username.text().strip(), self.login_password.text())
        except Exception as exc:  # noqa: BLE001
            self.login_error.setText(str(exc) or "Invalid credentials. Please try again.")
            return
        self.login_password.clear()
        self.logged_in.emit()

    def _register(self) -> None:
        self.reg_error.clear()
        password = self.reg_password.text()
        if password != self.reg_confirm.text():
            self.reg_error.setText("Passwords do not match")
            return
        try:
            self.controller.register(
                self.reg_username.text().strip(),
                self.reg_email.text().strip(),
                password,
            )
        except Exception as exc:  # noqa: BLE001
            self.reg_error.setText(str(exc) or "Registration failed")
            return
        self.reg_password.clear()
        self.reg_confirm.clear()
        self.logged_in.emit()


class ConversationListWindow(QMainWindow):
    """Inbox listing every conversation of the signed-in user."""

    def __init__(self, app: MarketplaceController, controller: ConversationListController, scheduler: QtScheduler):
        super().__init__()
        self.app = app
        self.controller = controller
        self.scheduler = scheduler
        self.items: Dict[int, QListWidgetItem] = {}
        self.setWindowTitle("Messages")
        self.resize(640, 720)
        self.setStyleSheet(STYLESHEET)
        self._build_ui()
        self._unsubscribe = controller.changed.subscribe(self._render)

    def _build_ui(self) -> None:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(PADDING * 2, PADDING * 2, PADDING * 2, PADDING * 2)

        header = QHBoxLayout()
        title = QLabel("Messages")
        title.setStyleSheet("font-size: 22px; font-weight: bold")
        self.count_label = QLabel()
        self.count_label.setStyleSheet(f"color: {TEXT_MUTED}")
        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self.controller.refresh)
        logout_btn = QPushButton("Logout")
        logout_btn.clicked.connect(self.app.logout)
        header.addWidget(title)
        header.addStretch()
        header.addWidget(self.count_label)
        header.addWidget(refresh_btn)
        header.addWidget(logout_btn)
        layout.addLayout(header)

        user = self.app.user
        signed_in = QLabel(f"Signed in as {user.username}" if user else "")
        signed_in.setStyleSheet(f"color: {TEXT_MUTED}")
        layout.addWidget(signed_in)

        self.status_label = QLabel()
        self.status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.status_label.setStyleSheet(f"color: {TEXT_MUTED}")
        layout.addWidget(self.status_label)

        self.conversation_list = QListWidget()
        self.conversation_list.setIconSize(QSize(THUMBNAIL_SIZE, THUMBNAIL_SIZE))
        self.conversation_list.itemActivated.connect(self._conversation_activated)
        self.conversation_list.itemClicked.connect(self._conversation_activated)
        layout.addWidget(self.conversation_list, 1)
        self.setCentralWidget(container)

    def _render(self, controller: ConversationListController) -> None:
        if controller.loading:
            self.status_label.setText("Loading conversations…")
            self.status_label.show()
            return
        conversations = controller.conversations
        count = len(conversations)
        self.count_label.setText(f"{count} conversation{'' if count == 1 else 's'}")
        if conversations:
            self.status_label.hide()
        else:
            self.status_label.setText("No messages yet.\nStart a conversation by messaging a seller on any listing.")
            self.status_label.show()
        self.conversation_list.clear()
        self.items = {}
        for conversation in conversations:
            self._add_item(conversation)

    def _add_item(self, conversation: Conversation) -> None:
        text = (
            f"{conversation.other_username}    {self.controller.time_label(conversation)}\n"
            f"{conversation.listing_title}\n"
            f"{self.controller.preview(conversation)}"
        )
        item = QListWidgetItem(text)
        item.setData(Qt.ItemDataRole.UserRole, conversation)
        self.conversation_list.addItem(item)
        self.items[conversation.id] = item
        if conversation.listing_image:
            self._load_thumbnail(conversation.id, conversation.listing_image)

    def _load_thumbnail(self, conversation_id: int, filename: str) -> None:
        def show(data: bytes) -> None:
            item = self.items.get(conversation_id)
            pixmap = QPixmap()
            if item is not None and pixmap.loadFromData(data):
                item.setIcon(QIcon(pixmap))

        def skip(exc: Exception) -> None:
            logger.debug("THUMBNAIL_FAILED filename=%s error=%s", filename, exc)

        self.scheduler.submit(lambda: self.app.image(filename), show, skip)

    def _conversation_activated(self, item: QListWidgetItem) -> None:
        conversation = item.data(Qt.ItemDataRole.UserRole)
        if conversation is not None:
            self.controller.open(conversation)

    def closeEvent(self, event: QCloseEvent) -> None:
        self._unsubscribe()
        self.controller.close()
        super().closeEvent(event)


class ChatWindow(QMainWindow):
    """Transcript of one conversation with the message box underneath."""

    back_requested = pyqtSignal()

    def __init__(self, transcript: TranscriptController, composer: MessageComposer):
        super().__init__()
        self.transcript = transcript
        self.composer = composer
        self.setWindowTitle("Conversation")
        self.resize(720, 760)
        self.setStyleSheet(STYLESHEET)
        self._build_ui()
        self._unsubscribers = [
            transcript.changed.subscribe(self._state_changed),
            transcript.messages_changed.subscribe(self._render_groups),
            composer.changed.subscribe(self._composer_changed),
        ]

    def _build_ui(self) -> None:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(PADDING * 2, PADDING * 2, PADDING * 2, PADDING * 2)

        header = QHBoxLayout()
        back_btn = QPushButton("‹ Back")
        back_btn.clicked.connect(self.back_requested)
        self.peer_label = QLabel("Loading…")
        self.peer_label.setStyleSheet("font-size: 16px; font-weight: bold")
        self.listing_label = QLabel()
        self.listing_label.setStyleSheet(f"color: {ACCENT_HOVER}")
        titles = QVBoxLayout()
        titles.addWidget(self.peer_label)
        titles.addWidget(self.listing_label)
        header.addWidget(back_btn)
        header.addLayout(titles, 1)
        layout.addLayout(header)

        self.messages_view = QTextEdit()
        self.messages_view.setReadOnly(True)
        layout.addWidget(self.messages_view, 1)

        self.error_label = QLabel()
        self.error_label.setStyleSheet(f"color: {ERROR}")
        self.error_label.hide()
        layout.addWidget(self.error_label)

        composer_row = QHBoxLayout()
        self.message_input = QLineEdit()
        self.message_input.setPlaceholderText("Type a message...")
        self.message_input.setMaxLength(MAX_MESSAGE_LENGTH)
        self.message_input.textEdited.connect(self.composer.set_draft)
        self.message_input.returnPressed.connect(self._send)
        self.send_btn = QPushButton("Send")
        self.send_btn.setEnabled(False)
        self.send_btn.clicked.connect(self._send)
        composer_row.addWidget(self.message_input, 1)
        composer_row.addWidget(self.send_btn)
        layout.addLayout(composer_row)
        self.setCentralWidget(container)

    def _state_changed(self, transcript: TranscriptController) -> None:
        conversation = transcript.conversation
        if transcript.state is TranscriptState.READY and conversation is not None:
            self.setWindowTitle(f"{conversation.other_username} – {conversation.listing_title}")
            self.peer_label.setText(conversation.other_username)
            self.listing_label.setText(conversation.listing_title)
            self.message_input.setFocus()
        self._composer_changed(self.composer)

    def _render_groups(self, groups: List[DateGroup]) -> None:
        if not groups:
            self.messages_view.setHtml(
                f'<p style="text-align:center; color:{TEXT_MUTED}; margin-top:40px;">No messages yet. Say hello!</p>'
            )
            return
        parts: List[str] = []
        for group in groups:
            parts.append(
                f'<p style="text-align:center; color:{TEXT_MUTED}; font-size:11px; margin:12px 0 6px 0;">'
                f"{html.escape(group.date_label)}</p>"
            )
            parts.extend(self._format_message(msg) for msg in group.messages)
        self.messages_view.setHtml("".join(parts))
        self._scroll_to_bottom()

    def _format_message(self, msg: Message) -> str:
        mine = self.transcript.is_mine(msg)
        align = "right" if mine else "left"
        bubble_color = BUBBLE_SENT if mine else BUBBLE_RECEIVED
        text = html.escape(msg.content).replace("\n", "<br>")
        return (
            f'<table width="100%" style="margin:3px 0;"><tr><td align="{align}">'
            f'<table style="background:{bubble_color}; border-radius:12px;" cellpadding="8"><tr><td>'
            f'{text}<br><span style="color:{TEXT_MUTED}; font-size:10px;">{self.transcript.clock_label(msg)}</span>'
            f"</td></tr></table></td></tr></table>"
        )

    def _scroll_to_bottom(self) -> None:
        bar = self.messages_view.verticalScrollBar()
        bar.setValue(bar.maximum())

    def _composer_changed(self, composer: MessageComposer) -> None:
        if self.message_input.text() != composer.draft:
            self.message_input.setText(composer.draft)
        self.send_btn.setEnabled(composer.can_send)
        self.send_btn.setText("Sending…" if composer.sending else "Send")
        if composer.error:
            self.error_label.setText(composer.error)
            self.error_label.show()
        else:
            self.error_label.hide()

    def _send(self) -> None:
        self.composer.send(self.message_input.text())

    def closeEvent(self, event: QCloseEvent) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self.transcript.close()
        super().closeEvent(event)


class ChatApplication:
    """Top-level class wiring windows together; also the controllers' navigator."""

    def __init__(self):
        self.app = QApplication.instance() or QApplication([])
        self.controller = MarketplaceController()
        self.scheduler = QtScheduler()
        self.login_window = LoginWindow(self.controller)
        self.login_window.logged_in.connect(self.to_conversations)
        self.current: Optional[QMainWindow] = None
        self.controller.session.subscribe(self._session_changed)

    def _switch_to(self, window: QMainWindow) -> None:
        previous, self.current = self.current, window
        window.show()
        if previous is None or previous is window:
            return
        if previous is self.login_window:
            previous.hide()
        else:
            previous.close()

    def _session_changed(self, session) -> None:
        if session is None:
            self.to_login()

    def to_login(self) -> None:
        if self.current is self.login_window:
            return
        self._switch_to(self.login_window)

    def to_conversations(self) -> None:
        controller = self.controller.conversation_list(self.scheduler, self)
        self._switch_to(ConversationListWindow(self.controller, controller, self.scheduler))
        controller.mount()

    def to_conversation(self, conversation_id: int) -> None:
        transcript, composer = self.controller.transcript(conversation_id, self.scheduler, self)
        window = ChatWindow(transcript, composer)
        window.back_requested.connect(self.to_conversations)
        self._switch_to(window)
        transcript.mount()

    def run(self) -> int:
        if self.controller.session.is_authenticated and self.controller.api:
            self.to_conversations()
        else:
            self._switch_to(self.login_window)
        return self.app.exec()


__all__ = ["ChatApplication", "ChatWindow", "ConversationListWindow", "LoginWindow"]
