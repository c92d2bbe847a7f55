"""Pygame UI shell for Cognitrain.

Views:
- Landing (name entry)
- Assessment (five timed stages)
- Results (scores plus the personalised profile message)
- Game selection, Memory Match and Quick Math
- Dashboard

Deterministic timing/scoring/RNG/state lives in the core modules; screens
only read snapshots and forward input to the session.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .assessment import AssessmentState
from .choice_stages import ChoicePayload
from .clock import RealClock
from .game_session import GameSnapshot, GameState
from .memory_match import MemoryMatchPayload, MemoryMatchSession
from .narrator import NarrationDispatcher, build_narrator
from .navigation import View
from .persistence import ProgressRepository, SqliteStore
from .quick_math import QuickMathPayload, QuickMathSession
from .reaction_time import ReactionPayload
from .recall_stages import RecallPayload
from .results import GAME_DESCRIPTIONS, STAGE_ORDER, GameType
from .scoring import AREA_LABELS, strongest_and_weakest
from .session import CognitrainSession, new_seed
from .settings import Settings
from .timers import TimerQueue


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


@dataclass(frozen=True, slots=True)
class Theme:
    bg: tuple[int, int, int]
    panel_bg: tuple[int, int, int]
    header_bg: tuple[int, int, int]
    border: tuple[int, int, int]
    text_main: tuple[int, int, int]
    text_muted: tuple[int, int, int]
    active_bg: tuple[int, int, int]
    active_text: tuple[int, int, int]
    row_bg: tuple[int, int, int]
    row_border: tuple[int, int, int]
    accent: tuple[int, int, int]
    good: tuple[int, int, int]
    bad: tuple[int, int, int]


DARK_THEME = Theme(
    bg=(3, 9, 78),
    panel_bg=(8, 18, 104),
    header_bg=(18, 30, 118),
    border=(226, 236, 255),
    text_main=(238, 245, 255),
    text_muted=(186, 200, 224),
    active_bg=(244, 248, 255),
    active_text=(14, 26, 74),
    row_bg=(9, 20, 106),
    row_border=(62, 84, 152),
    accent=(120, 142, 196),
    good=(96, 200, 130),
    bad=(226, 84, 84),
)

LIGHT_THEME = Theme(
    bg=(226, 232, 244),
    panel_bg=(246, 248, 252),
    header_bg=(208, 218, 240),
    border=(40, 56, 110),
    text_main=(18, 26, 60),
    text_muted=(80, 92, 126),
    active_bg=(30, 52, 130),
    active_text=(244, 248, 255),
    row_bg=(236, 240, 250),
    row_border=(150, 164, 204),
    accent=(60, 90, 180),
    good=(28, 140, 70),
    bad=(196, 40, 40),
)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font, session: CognitrainSession) -> None:
        self._surface = surface
        self._font = font
        self._session = session
        self._screens: dict[View, Screen] = {}
        self._shown: View | None = None
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    @property
    def session(self) -> CognitrainSession:
        return self._session

    @property
    def theme(self) -> Theme:
        return DARK_THEME if self._session.dark_mode else LIGHT_THEME

    def register(self, view: View, screen: Screen) -> None:
        self._screens[view] = screen

    def quit(self) -> None:
        self._running = False

    def go_back(self) -> None:
        nav = self._session.navigator
        # Nothing behind the entry views: leaving them closes the app.
        if nav.current in (View.LANDING, View.DASHBOARD) and not nav.can_go_back():
            self.quit()
            return
        self._session.back()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if event.type == pygame.KEYDOWN and event.key == pygame.K_F2:
            self._session.toggle_dark_mode()
            return
        screen = self._screens.get(self._session.view)
        if screen is not None:
            screen.handle_event(event)

    def update(self) -> None:
        self._session.timers.pump()
        view = self._session.view
        if view is not self._shown:
            self._shown = view
            screen = self._screens.get(view)
            on_enter = getattr(screen, "on_enter", None)
            if on_enter is not None:
                on_enter()

    def render(self) -> None:
        screen = self._screens.get(self._session.view)
        if screen is None:
            self._surface.fill(self.theme.bg)
            return
        screen.render(self._surface)


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _wrap_text(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        trial = word if current == "" else f"{current} {word}"
        if current == "" or font.size(trial)[0] <= max_width:
            current = trial
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def _draw_chrome(
    surface: pygame.Surface,
    theme: Theme,
    *,
    title: str,
    tag: str,
    footer: str,
    title_font: pygame.font.Font,
    hint_font: pygame.font.Font,
) -> pygame.Rect:
    """Frame, header and footer shared by every screen. Returns the content rect."""

    w, h = surface.get_size()
    surface.fill(theme.bg)

    frame_margin = max(10, min(26, w // 34))
    frame = pygame.Rect(
        frame_margin,
        frame_margin,
        max(260, w - frame_margin * 2),
        max(220, h - frame_margin * 2),
    )
    pygame.draw.rect(surface, theme.panel_bg, frame)
    pygame.draw.rect(surface, theme.border, frame, 2)

    header_h = max(34, min(52, h // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, theme.header_bg, header)
    pygame.draw.line(surface, theme.border, (header.x, header.bottom), (header.right, header.bottom), 1)

    tag_surf = hint_font.render(tag, True, theme.text_muted)
    surface.blit(tag_surf, (header.x + 12, header.y + (header.h - tag_surf.get_height()) // 2))
    title_surf = title_font.render(_fit_label(title_font, title, header.w - 200), True, theme.text_main)
    surface.blit(title_surf, title_surf.get_rect(center=(frame.centerx, header.centery)))

    foot = hint_font.render(footer, True, theme.text_muted)
    surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))

    content_top = header.bottom + max(12, h // 36)
    content_bottom = frame.bottom - max(36, h // 14)
    return pygame.Rect(
        frame.x + max(14, w // 44),
        content_top,
        frame.w - max(28, w // 22),
        max(80, content_bottom - content_top),
    )


def _draw_bar(
    surface: pygame.Surface,
    theme: Theme,
    rect: pygame.Rect,
    fraction: float,
    *,
    color: tuple[int, int, int] | None = None,
) -> None:
    fraction = max(0.0, min(1.0, float(fraction)))
    pygame.draw.rect(surface, theme.row_bg, rect)
    fill = pygame.Rect(rect.x, rect.y, int(round(rect.w * fraction)), rect.h)
    if fill.w > 0:
        pygame.draw.rect(surface, color or theme.accent, fill)
    pygame.draw.rect(surface, theme.row_border, rect, 1)


def _blit_lines(
    surface: pygame.Surface,
    font: pygame.font.Font,
    lines: list[str],
    color: tuple[int, int, int],
    *,
    x: int,
    y: int,
    gap: int = 4,
) -> int:
    for line in lines:
        text = font.render(line, True, color)
        surface.blit(text, (x, y))
        y += text.get_height() + gap
    return y


class LoadingScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._title_font = pygame.font.Font(None, 42)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        return

    def render(self, surface: pygame.Surface) -> None:
        theme = self._app.theme
        content = _draw_chrome(
            surface,
            theme,
            title="Cognitrain",
            tag="LOADING",
            footer="",
            title_font=self._title_font,
            hint_font=self._hint_font,
        )
        text = self._app.font.render("Loading your progress...", True, theme.text_muted)
        surface.blit(text, text.get_rect(center=content.center))


class TextInputMixin:
    _input: str
    _max_len: int = 60

    def _edit_text(self, event: pygame.event.Event) -> None:
        if event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
            return
        ch = getattr(event, "unicode", "")
        if ch and ch.isprintable() and len(self._input) < self._max_len:
            self._input += ch


class LandingScreen(TextInputMixin):
    def __init__(self, app: App) -> None:
        self._app = app
        self._input = ""
        self._error: str | None = None
        self._max_len = 40
        self._title_font = pygame.font.Font(None, 42)
        self._body_font = pygame.font.Font(None, 30)
        self._hint_font = pygame.font.Font(None, 22)

    def on_enter(self) -> None:
        self._input = self._app.session.user_name or ""
        self._error = None

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._app.go_back()
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if not self._app.session.start_assessment(self._input):
                self._error = "Please enter your name to begin."
            return
        self._error = None
        self._edit_text(event)

    def render(self, surface: pygame.Surface) -> None:
        theme = self._app.theme
        content = _draw_chrome(
            surface,
            theme,
            title="Welcome to Cognitrain",
            tag="START",
            footer="Enter: Begin assessment  |  Esc: Quit  |  F2: Theme",
            title_font=self._title_font,
            hint_font=self._hint_font,
        )
        intro = (
            "A short assessment measures memory, speed, logic and working memory. "
            "Afterwards, brain games help you train your weakest areas."
        )
        y = _blit_lines(
            surface,
            self._body_font,
            _wrap_text(self._body_font, intro, content.w - 20),
            theme.text_main,
            x=content.x + 10,
            y=content.y + 10,
        )
        label = self._body_font.render("Your name:", True, theme.text_muted)
        surface.blit(label, (content.x + 10, y + 20))
        box = pygame.Rect(content.x + 10, y + 50, min(520, content.w - 20), 44)
        pygame.draw.rect(surface, theme.row_bg, box)
        pygame.draw.rect(surface, theme.border, box, 2)
        entry = self._app.font.render(self._input + "_", True, theme.text_main)
        surface.blit(entry, (box.x + 10, box.y + (box.h - entry.get_height()) // 2))
        if self._error:
            err = self._hint_font.render(self._error, True, theme.bad)
            surface.blit(err, (box.x, box.bottom + 10))


class AssessmentScreen(TextInputMixin):
    def __init__(self, app: App) -> None:
        self._app = app
        self._input = ""
        self._title_font = pygame.font.Font(None, 42)
        self._body_font = pygame.font.Font(None, 30)
        self._big_font = pygame.font.Font(None, 64)
        self._hint_font = pygame.font.Font(None, 22)

    def on_enter(self) -> None:
        self._input = ""

    def handle_event(self, event: pygame.event.Event) -> None:
        assessment = self._app.session.assessment
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self._app.go_back()
            return
        if assessment is None:
            return
        snap = assessment.snapshot()
        payload = None if snap.stage is None else snap.stage.payload

        if isinstance(payload, ReactionPayload):
            if event.type == pygame.MOUSEBUTTONDOWN or (
                event.type == pygame.KEYDOWN and event.key in (pygame.K_SPACE, pygame.K_RETURN)
            ):
                assessment.click()
            return

        if event.type != pygame.KEYDOWN:
            return

        if isinstance(payload, RecallPayload):
            if not payload.accepting_input:
                return
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                if assessment.submit_recall(self._input):
                    self._input = ""
                return
            self._edit_text(event)
            return

        if isinstance(payload, ChoicePayload) and payload.accepting_input:
            choices = payload.item.choices
            if all(isinstance(c, bool) for c in choices):
                if event.key == pygame.K_t:
                    assessment.answer(True)
                elif event.key == pygame.K_f:
                    assessment.answer(False)
                return
            idx = self._choice_from_key(event.key)
            if idx is not None and idx < len(choices):
                assessment.choose(choices[idx])

    @staticmethod
    def _choice_from_key(key: int) -> int | None:
        mapping = {
            pygame.K_1: 0,
            pygame.K_2: 1,
            pygame.K_3: 2,
            pygame.K_4: 3,
            pygame.K_KP1: 0,
            pygame.K_KP2: 1,
            pygame.K_KP3: 2,
            pygame.K_KP4: 3,
        }
        return mapping.get(key)

    def render(self, surface: pygame.Surface) -> None:
        theme = self._app.theme
        assessment = self._app.session.assessment
        snap = None if assessment is None else assessment.snapshot()
        stage = None if snap is None else snap.stage
        footer = "Esc: Leave assessment"
        if stage is not None and stage.input_hint:
            footer = f"{stage.input_hint}  |  {footer}"
        tag = "ASSESSMENT"
        if snap is not None:
            tag = f"STAGE {min(snap.stage_index + 1, snap.stage_count)}/{snap.stage_count}"
        content = _draw_chrome(
            surface,
            theme,
            title="Cognitive Assessment" if snap is None or not snap.stage_title else snap.stage_title,
            tag=tag,
            footer=footer,
            title_font=self._title_font,
            hint_font=self._hint_font,
        )
        if snap is None:
            return
        if snap.state in (AssessmentState.FINISHING, AssessmentState.DONE):
            text = self._body_font.render("Analyzing your results...", True, theme.text_main)
            surface.blit(text, text.get_rect(center=content.center))
            return

        bar = pygame.Rect(content.x, content.y, content.w, 10)
        _draw_bar(surface, theme, bar, snap.stage_index / max(1, snap.stage_count))
        if stage is None:
            return

        y = bar.bottom + 14
        prompt_lines = _wrap_text(self._body_font, stage.prompt, content.w - 20)
        y = _blit_lines(surface, self._body_font, prompt_lines, theme.text_main, x=content.x + 10, y=y)
        if stage.time_remaining_s is not None:
            remaining = self._hint_font.render(f"{stage.time_remaining_s:0.1f}s", True, theme.text_muted)
            surface.blit(remaining, remaining.get_rect(topright=(content.right - 10, bar.bottom + 14)))

        body = pygame.Rect(content.x, y + 10, content.w, max(40, content.bottom - y - 10))
        payload = stage.payload
        if isinstance(payload, RecallPayload):
            self._render_recall(surface, theme, body, payload)
        elif isinstance(payload, ReactionPayload):
            self._render_reaction(surface, theme, body, payload)
        elif isinstance(payload, ChoicePayload):
            self._render_choice(surface, theme, body, payload)

        if stage.feedback:
            good = stage.feedback == "Correct!" or stage.feedback.endswith("ms")
            fb = self._body_font.render(stage.feedback, True, theme.good if good else theme.bad)
            surface.blit(fb, fb.get_rect(midbottom=(body.centerx, body.bottom - 4)))

    def _render_recall(self, surface: pygame.Surface, theme: Theme, body: pygame.Rect, p: RecallPayload) -> None:
        if p.items is not None:
            shown = "  ".join(p.items)
            lines = _wrap_text(self._big_font, shown, body.w - 40)
            y = body.y + max(0, (body.h - len(lines) * 60) // 2)
            for line in lines:
                text = self._big_font.render(line, True, theme.text_main)
                surface.blit(text, text.get_rect(midtop=(body.centerx, y)))
                y += 60
            return
        if p.accepting_input:
            box = pygame.Rect(body.x + 10, body.y + 20, min(640, body.w - 20), 48)
            pygame.draw.rect(surface, theme.row_bg, box)
            pygame.draw.rect(surface, theme.border, box, 2)
            entry = self._app.font.render(_fit_label(self._app.font, self._input + "_", box.w - 20), True, theme.text_main)
            surface.blit(entry, (box.x + 10, box.y + (box.h - entry.get_height()) // 2))

    def _render_reaction(self, surface: pygame.Surface, theme: Theme, body: pygame.Rect, p: ReactionPayload) -> None:
        side = max(60, min(body.h - 50, 200))
        square = pygame.Rect(0, 0, side, side)
        square.center = (body.centerx, body.y + side // 2 + 10)
        color = theme.bad if p.stimulus_visible else theme.row_border
        pygame.draw.rect(surface, color, square)
        pygame.draw.rect(surface, theme.border, square, 2)

    def _render_choice(self, surface: pygame.Surface, theme: Theme, body: pygame.Rect, p: ChoicePayload) -> None:
        y = body.y
        if p.item.sequence:
            seq = self._big_font.render("  ".join(p.item.sequence) + "  ?", True, theme.text_main)
            surface.blit(seq, seq.get_rect(midtop=(body.centerx, y)))
            y += seq.get_height() + 16
        counter = self._hint_font.render(f"{p.index + 1} / {p.total}", True, theme.text_muted)
        surface.blit(counter, (body.x + 10, body.y))

        choices = p.item.choices
        bool_choices = all(isinstance(c, bool) for c in choices)
        labels = ["T: True", "F: False"] if bool_choices else [f"{i + 1}: {c}" for i, c in enumerate(choices)]
        gap = 12
        col_w = max(80, (body.w - gap * (len(labels) + 1)) // max(1, len(labels)))
        x = body.x + gap
        for choice, label in zip(choices, labels):
            row = pygame.Rect(x, y, col_w, 44)
            selected = p.selected is not None and p.selected == choice and type(p.selected) is type(choice)
            pygame.draw.rect(surface, theme.active_bg if selected else theme.row_bg, row)
            pygame.draw.rect(surface, theme.row_border, row, 1)
            text = self._body_font.render(label, True, theme.active_text if selected else theme.text_main)
            surface.blit(text, text.get_rect(center=row.center))
            x += col_w + gap


class ResultsScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._title_font = pygame.font.Font(None, 42)
        self._body_font = pygame.font.Font(None, 28)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        session = self._app.session
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            session.open_game_selection()
        elif event.key == pygame.K_d:
            session.open_dashboard()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._app.go_back()

    def render(self, surface: pygame.Surface) -> None:
        theme = self._app.theme
        session = self._app.session
        content = _draw_chrome(
            surface,
            theme,
            title="Your Cognitive Profile",
            tag="RESULTS",
            footer="Enter: Brain games  |  D: Dashboard  |  Esc: Back",
            title_font=self._title_font,
            hint_font=self._hint_font,
        )
        scores = session.scores
        if scores is None:
            text = self._body_font.render("No assessment yet.", True, theme.text_muted)
            surface.blit(text, text.get_rect(center=content.center))
            return

        mapping = scores.as_mapping()
        label_w = 220
        y = content.y + 6
        for key in STAGE_ORDER:
            value = mapping[key.value]
            label = self._body_font.render(AREA_LABELS[key.value], True, theme.text_main)
            surface.blit(label, (content.x + 10, y))
            bar = pygame.Rect(content.x + label_w, y + 4, content.w - label_w - 90, 16)
            _draw_bar(surface, theme, bar, value / 100.0)
            pct = self._body_font.render(f"{round(value)}%", True, theme.text_main)
            surface.blit(pct, (bar.right + 10, y))
            y += 30

        strongest, weakest = strongest_and_weakest(mapping)
        summary = self._body_font.render(f"Strongest: {strongest}    Area for growth: {weakest}", True, theme.text_muted)
        surface.blit(summary, (content.x + 10, y + 6))
        y += 40

        if session.narrative_pending() and not scores.narrative:
            message = "Generating your personalised message..."
        else:
            message = session.profile_message()
        _blit_lines(
            surface,
            self._body_font,
            _wrap_text(self._body_font, message, content.w - 20),
            theme.text_main,
            x=content.x + 10,
            y=y,
        )


class MenuScreen:
    def __init__(
        self,
        app: App,
        title: str,
        items: list[MenuItem] | Callable[[], list[MenuItem]],
        *,
        tag: str = "MENU",
        header_lines: Callable[[], list[str]] | None = None,
    ) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._tag = tag
        self._header_lines = header_lines
        self._selected = 0
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._body_font = pygame.font.Font(None, 26)
        self._hint_font = pygame.font.Font(None, 22)

    def on_enter(self) -> None:
        self._selected = 0

    def items(self) -> list[MenuItem]:
        return self._items() if callable(self._items) else list(self._items)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
            return

        if event.type == pygame.JOYHATMOTION:
            _, y = event.value
            if y == 1:
                self._move(-1)
            elif y == -1:
                self._move(1)
            return

        if event.type == pygame.JOYBUTTONDOWN:
            # Common mapping: 0 = select, 1 = back/cancel.
            if event.button == 0:
                self._activate()
            elif event.button == 1:
                self._app.go_back()

    def _handle_key(self, key: int) -> None:
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._app.go_back()

    def _move(self, delta: int) -> None:
        items = self.items()
        if not items:
            return
        self._selected = (self._selected + delta) % len(items)

    def _activate(self) -> None:
        items = self.items()
        if not items:
            return
        items[min(self._selected, len(items) - 1)].action()

    def render(self, surface: pygame.Surface) -> None:
        theme = self._app.theme
        h = surface.get_height()
        content = _draw_chrome(
            surface,
            theme,
            title=self._title,
            tag=self._tag,
            footer="Enter/Space: Select  |  Esc/Backspace: Back  |  F2: Theme",
            title_font=self._title_font,
            hint_font=self._hint_font,
        )

        top = content.y
        if self._header_lines is not None:
            lines: list[str] = []
            for line in self._header_lines():
                lines.extend(_wrap_text(self._body_font, line, content.w - 20) or [""])
            top = _blit_lines(surface, self._body_font, lines, theme.text_main, x=content.x + 10, y=top) + 8

        list_rect = pygame.Rect(content.x, top, content.w, max(60, content.bottom - top))
        pygame.draw.rect(surface, theme.row_bg, list_rect)
        pygame.draw.rect(surface, theme.row_border, list_rect, 1)

        items = self.items()
        item_count = max(1, len(items))
        gap = max(4, min(10, list_rect.h // max(10, item_count * 3)))
        row_h = max(26, min(44, (list_rect.h - gap * (item_count + 1)) // item_count, h // 10))
        total_h = row_h * item_count + gap * (item_count - 1)
        y = list_rect.y + max(6, (list_rect.h - total_h) // 2)
        selected_idx = min(self._selected, len(items) - 1)

        for idx, item in enumerate(items):
            row = pygame.Rect(list_rect.x + 12, y, list_rect.w - 24, row_h)
            selected = idx == selected_idx
            if selected:
                pygame.draw.rect(surface, theme.active_bg, row)
                pygame.draw.rect(surface, theme.accent, row, 2)
            else:
                pygame.draw.rect(surface, theme.panel_bg, row)
                pygame.draw.rect(surface, theme.row_border, row, 1)

            color = theme.active_text if selected else theme.text_main
            label = _fit_label(self._item_font, item.label, row.w - 20)
            text = self._item_font.render(label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap


class GameScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._cursor = 0
        self._card_rects: list[pygame.Rect] = []
        self._title_font = pygame.font.Font(None, 42)
        self._body_font = pygame.font.Font(None, 30)
        self._big_font = pygame.font.Font(None, 64)
        self._hint_font = pygame.font.Font(None, 22)

    def on_enter(self) -> None:
        self._cursor = 0
        self._card_rects = []

    def handle_event(self, event: pygame.event.Event) -> None:
        session = self._app.session
        game = session.game
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self._app.go_back()
            return
        if game is None:
            return

        if game.state is GameState.ENDED:
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_r):
                session.play_again()
                self.on_enter()
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_BACKSPACE:
                self._app.go_back()
            return

        if isinstance(game, MemoryMatchSession):
            self._handle_memory_match(game, event)
        elif isinstance(game, QuickMathSession):
            if event.type != pygame.KEYDOWN:
                return
            if event.key in (pygame.K_t, pygame.K_LEFT):
                game.answer(True)
            elif event.key in (pygame.K_f, pygame.K_RIGHT):
                game.answer(False)

    def _handle_memory_match(self, game: MemoryMatchSession, event: pygame.event.Event) -> None:
        snap = game.snapshot()
        p = snap.payload
        if not isinstance(p, MemoryMatchPayload):
            return
        if event.type == pygame.MOUSEBUTTONDOWN:
            for idx, rect in enumerate(self._card_rects):
                if rect.collidepoint(event.pos):
                    self._cursor = idx
                    game.flip_card(idx)
                    return
            return
        if event.type != pygame.KEYDOWN:
            return
        row, col = divmod(self._cursor, p.cols)
        if event.key in (pygame.K_UP, pygame.K_w):
            row = (row - 1) % p.rows
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            row = (row + 1) % p.rows
        elif event.key in (pygame.K_LEFT, pygame.K_a):
            col = (col - 1) % p.cols
        elif event.key in (pygame.K_RIGHT, pygame.K_d):
            col = (col + 1) % p.cols
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            game.flip_card(self._cursor)
            return
        else:
            return
        self._cursor = row * p.cols + col

    def render(self, surface: pygame.Surface) -> None:
        theme = self._app.theme
        game = self._app.session.game
        snap = None if game is None else game.snapshot()
        if snap is not None and snap.state is GameState.ENDED:
            footer = "Enter/R: Play again  |  Esc: Back"
        elif snap is not None and snap.game_type is GameType.QUICK_MATH:
            footer = "T: True  |  F: False  |  Esc: Quit game"
        else:
            footer = "Arrows: Move  |  Enter/Space: Flip  |  Esc: Quit game"
        content = _draw_chrome(
            surface,
            theme,
            title="Brain Game" if snap is None else snap.title,
            tag="GAME",
            footer=footer,
            title_font=self._title_font,
            hint_font=self._hint_font,
        )
        if snap is None:
            return

        score = self._body_font.render(f"Score: {snap.score}", True, theme.text_main)
        surface.blit(score, (content.x + 10, content.y))
        if snap.time_remaining_s is not None and snap.state is GameState.RUNNING:
            remaining = self._body_font.render(f"Time: {snap.time_remaining_s:0.0f}s", True, theme.text_main)
            surface.blit(remaining, remaining.get_rect(topright=(content.right - 10, content.y)))
        bar = pygame.Rect(content.x, content.y + 32, content.w, 10)
        _draw_bar(surface, theme, bar, snap.progress / 100.0)
        body = pygame.Rect(content.x, bar.bottom + 12, content.w, max(40, content.bottom - bar.bottom - 12))

        if snap.state is GameState.ENDED:
            self._render_result(surface, theme, body, snap)
        elif isinstance(snap.payload, MemoryMatchPayload):
            self._render_memory_match(surface, theme, body, snap.payload)
        elif isinstance(snap.payload, QuickMathPayload):
            self._render_quick_math(surface, theme, body, snap.payload)

    def _render_result(self, surface: pygame.Surface, theme: Theme, body: pygame.Rect, snap: GameSnapshot) -> None:
        result = snap.result
        if result is None:
            return
        lines = ["Game Complete!", f"Final score: {result.score}"]
        if result.accuracy is not None:
            lines.append(f"Accuracy: {round(result.accuracy)}%")
        if result.elapsed_s is not None:
            lines.append(f"Time: {result.elapsed_s:0.1f}s")
        y = body.y + 10
        for i, line in enumerate(lines):
            font = self._big_font if i == 0 else self._body_font
            text = font.render(line, True, theme.text_main)
            surface.blit(text, text.get_rect(midtop=(body.centerx, y)))
            y += text.get_height() + 10

    def _render_memory_match(
        self,
        surface: pygame.Surface,
        theme: Theme,
        body: pygame.Rect,
        p: MemoryMatchPayload,
    ) -> None:
        gap = 10
        card_w = max(60, min(200, (body.w - gap * (p.cols + 1)) // p.cols))
        card_h = max(24, (body.h - gap * (p.rows + 1)) // p.rows)
        grid_w = card_w * p.cols + gap * (p.cols - 1)
        x0 = body.centerx - grid_w // 2
        self._card_rects = []
        for card in p.cards:
            r, c = divmod(card.index, p.cols)
            rect = pygame.Rect(x0 + c * (card_w + gap), body.y + gap + r * (card_h + gap), card_w, card_h)
            self._card_rects.append(rect)
            if card.matched:
                fill = theme.good
            elif card.face_up:
                fill = theme.active_bg
            else:
                fill = theme.row_bg
            pygame.draw.rect(surface, fill, rect)
            border_w = 3 if card.index == self._cursor else 1
            pygame.draw.rect(surface, theme.accent if card.index == self._cursor else theme.row_border, rect, border_w)
            if card.face_up:
                label = _fit_label(self._body_font, card.icon, rect.w - 8)
                text = self._body_font.render(label, True, theme.active_text)
                surface.blit(text, text.get_rect(center=rect.center))

        pairs = self._hint_font.render(f"Pairs: {p.matched_pairs}/{p.total_pairs}", True, theme.text_muted)
        surface.blit(pairs, (body.x + 10, body.y))

    def _render_quick_math(self, surface: pygame.Surface, theme: Theme, body: pygame.Rect, p: QuickMathPayload) -> None:
        counter = self._hint_font.render(f"Problem {p.index + 1} of {p.total}", True, theme.text_muted)
        surface.blit(counter, (body.x + 10, body.y))
        statement = self._big_font.render(p.statement.prompt, True, theme.text_main)
        surface.blit(statement, statement.get_rect(center=(body.centerx, body.y + body.h // 3)))
        question = self._body_font.render("Is this correct?", True, theme.text_muted)
        surface.blit(question, question.get_rect(center=(body.centerx, body.y + body.h // 3 + 50)))
        if p.last_correct is not None:
            text = "Correct! +100" if p.last_correct else "Wrong! -50"
            fb = self._body_font.render(text, True, theme.good if p.last_correct else theme.bad)
            surface.blit(fb, fb.get_rect(midbottom=(body.centerx, body.bottom - 4)))


def _dashboard_lines(session: CognitrainSession) -> list[str]:
    summary = session.dashboard()
    lines = [
        f"Welcome back, {summary.user_name}!",
        f"Games played: {summary.games_played}    Current streak: {summary.current_streak} day(s)",
    ]
    if summary.scores is not None:
        mapping = summary.scores.as_mapping()
        parts = [f"{AREA_LABELS[k.value]} {round(mapping[k.value])}%" for k in STAGE_ORDER]
        lines.append("  |  ".join(parts))
    titles = [GAME_DESCRIPTIONS[g].title for g in summary.recommended]
    lines.append("Recommended for you: " + ", ".join(titles))
    return lines


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    settings: Settings | None = None,
) -> int:
    if settings is None:
        settings = Settings.from_env()

    pygame.init()
    pygame.display.set_caption("Cognitrain")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    timers = TimerQueue(RealClock())
    narrator = build_narrator(
        api_key=settings.api_key,
        model=settings.model,
        timeout_s=settings.narrator_timeout_s,
    )
    session = CognitrainSession(
        repo=ProgressRepository(SqliteStore(settings.db_path)),
        timers=timers,
        narration=NarrationDispatcher(narrator, deliver=timers.call_soon_threadsafe),
        seed_source=new_seed,
    )
    app = App(surface=surface, font=font, session=session)

    def game_items() -> list[MenuItem]:
        items = [
            MenuItem(f"[{desc.icon}] {desc.title}", lambda t=game_type: session.start_game(t))
            for game_type, desc in GAME_DESCRIPTIONS.items()
        ]
        items.append(MenuItem("Back", app.go_back))
        return items

    def retake() -> None:
        session.start_assessment(session.user_name or "")

    def dashboard_items() -> list[MenuItem]:
        items = [MenuItem("Play brain games", session.open_game_selection)]
        if session.scores is not None:
            items.append(MenuItem("View assessment results", session.open_results))
        items.append(MenuItem("Retake assessment", retake))
        items.append(MenuItem("Quit", app.quit))
        return items

    app.register(View.LOADING, LoadingScreen(app))
    app.register(View.LANDING, LandingScreen(app))
    app.register(View.ASSESSMENT, AssessmentScreen(app))
    app.register(View.RESULTS, ResultsScreen(app))
    app.register(
        View.GAME_SELECTION,
        MenuScreen(
            app,
            "Brain Games",
            game_items,
            tag="GAMES",
            header_lines=lambda: [f"{d.title}: {d.description}" for d in GAME_DESCRIPTIONS.values()],
        ),
    )
    app.register(View.GAME, GameScreen(app))
    app.register(
        View.DASHBOARD,
        MenuScreen(
            app,
            "Dashboard",
            dashboard_items,
            tag="HOME",
            header_lines=lambda: _dashboard_lines(session),
        ),
    )

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.update()
            app.render()

            pygame.display.flip()

            # Show the loading view for one frame before reading the store.
            if session.view is View.LOADING:
                session.load()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        session.shutdown()
        pygame.quit()

    return 0
