"""NiceGUI + FastAPI application for controlling a sand table robot."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from nicegui import app, events, run as nicegui_run, ui

from .commands import PlayPauseAction, resolve_play_pause_action
from .config import POLL_CYCLE_MAX, POLL_CYCLE_MIN, ControlMode, SessionConfig
from .controller import SandBotController
from .errors import SandBotError
from .files import PATTERN_EXTENSIONS, FileDescriptor, is_pattern_file
from .geometry import format_duration, format_geometry
from .network import NetworkConfig
from .rendering import render_preview_svg
from .status import ConnectionState

logger = logging.getLogger(__name__)

STATE_COLORS = {
    ConnectionState.OFFLINE: "#dc2626",
    ConnectionState.IDLE: "#16a34a",
    ConnectionState.DOODLING: "#0F5F91",
    ConnectionState.PAUSED: "#d97706",
}

# ---------------------------------------------------------------------------
# Global state shared between UI and backend
# ---------------------------------------------------------------------------
status_messages: List[str] = []
status_lock = threading.Lock()

file_search = ""
files_signature: tuple = ()
history_signature: tuple = ()
status_signature: Optional[float] = None

# UI element references (populated in create_ui)
state_label: Optional[ui.label] = None  # type: ignore[assignment]
play_pause_button: Optional[ui.button] = None  # type: ignore[assignment]
stop_button: Optional[ui.button] = None  # type: ignore[assignment]
home_button: Optional[ui.button] = None  # type: ignore[assignment]
set_home_button: Optional[ui.button] = None  # type: ignore[assignment]
status_details: Optional[ui.column] = None  # type: ignore[assignment]
estimate_label: Optional[ui.label] = None  # type: ignore[assignment]
history_container: Optional[ui.column] = None  # type: ignore[assignment]
playlist_button: Optional[ui.button] = None  # type: ignore[assignment]
files_container: Optional[ui.column] = None  # type: ignore[assignment]
preview_html: Optional[ui.html] = None  # type: ignore[assignment]
pattern_label: Optional[ui.label] = None  # type: ignore[assignment]
upload_pattern_button: Optional[ui.button] = None  # type: ignore[assignment]
progress_slider: Optional[ui.slider] = None  # type: ignore[assignment]
wifi_button: Optional[ui.button] = None  # type: ignore[assignment]
control_frame: Optional[ui.element] = None  # type: ignore[assignment]
status_area: Optional[ui.textarea] = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def _append_status(message: str) -> None:
    timestamp = time.strftime("%H:%M:%S")
    with status_lock:
        status_messages.append(f"[{timestamp}] {message}")


controller = SandBotController(status_cb=_append_status)


async def _run_action(label: str, fn: Callable[..., Any], *args: Any) -> Any:
    """Run a blocking controller call off the event loop and report failures."""
    try:
        return await nicegui_run.io_bound(fn, *args)
    except SandBotError as exc:
        logger.warning("%s failed: %s", label, exc)
        _append_status(f"{label} failed: {exc}")
        ui.notify(f"{label} failed: {exc}", type="negative")
    except ValueError as exc:
        ui.notify(str(exc), type="warning")
    return None


def _mirror_config_to_url(config: SessionConfig) -> None:
    query = urlencode(config.to_query())
    ui.run_javascript(f"history.replaceState(null, '', '{'?' + query if query else '/'}')")


def _apply_config(**changes: Any) -> None:
    current = controller.config
    values: Dict[str, Any] = {
        "device_address": current.device_address,
        "poll_cycle": current.poll_cycle,
        "control_mode": current.control_mode,
        "secondary_address": current.secondary_address,
    }
    values.update(changes)
    try:
        config = SessionConfig(**values)
    except (TypeError, ValueError) as exc:
        ui.notify(f"Invalid setting: {exc}", type="warning")
        return
    controller.configure(config)
    _mirror_config_to_url(config)
    _update_control_frame()


def _update_control_frame() -> None:
    if control_frame is None:
        return
    url = controller.config.control_url()
    control_frame.props(f'src="{url or "about:blank"}"')


def _sync_status_to_ui() -> None:
    state = controller.connection_state
    status = controller.session.status

    if state_label is not None:
        state_label.text = state.value
        state_label.style(f"color: {STATE_COLORS[state]};")
    if play_pause_button is not None:
        action = resolve_play_pause_action(status)
        play_pause_button.props(f"icon={'play_arrow' if action is PlayPauseAction.RESUME else 'pause'}")
        play_pause_button.set_enabled(controller.can_play_pause)
    for button in (stop_button, home_button, set_home_button):
        if button is not None:
            button.set_enabled(controller.can_command)
    if home_button is not None:
        home_button.text = "reHome" if status is not None and status.homed else "Home"
    if status_details is not None:
        _render_status_details()
    if estimate_label is not None:
        if controller.loaded_name and controller.pattern:
            estimate_label.text = (
                f"Drawing estimate: {format_duration(controller.draw_time_estimate())}"
                f"  ({format_geometry(controller.session.geometry)})"
            )
        else:
            estimate_label.text = ""
    if playlist_button is not None:
        playlist_button.set_enabled(controller.can_save_playlist)
    if upload_pattern_button is not None:
        upload_pattern_button.set_enabled(controller.can_command and bool(controller.pattern))
    if wifi_button is not None:
        wifi_button.set_visibility(controller.can_edit_network)
    if pattern_label is not None:
        if controller.pattern:
            pattern_label.text = f"{controller.loaded_name or 'Unnamed'}: {len(controller.pattern)} points"
        else:
            pattern_label.text = "Load a .thr file to preview the pattern."
    _render_history()
    _render_files()
    if status_area is not None:
        with status_lock:
            status_area.value = "\n".join(status_messages[-250:])


def _render_status_details() -> None:
    global status_signature
    assert status_details is not None
    status = controller.session.status
    signature = status.fetched_at if status is not None else None
    if signature == status_signature and status_details.default_slot.children:
        return
    status_signature = signature
    status_details.clear()
    with status_details:
        if status is None:
            ui.label("No status received yet.").classes("text-sm text-gray-500")
            return
        x, y = status.position
        rows = [
            ("Position", f"X {x:.2f}  Y {y:.2f}"),
            ("Queue", str(status.queue_depth)),
            ("Paused", "Yes" if status.paused else "No"),
            ("Homed", "Yes" if status.homed else "No"),
            ("WiFi IP", status.wifi_ip or "N/A"),
            ("SSID", status.ssid or "N/A"),
            ("MAC", status.mac or "N/A"),
            ("Firmware Version", status.firmware_version or "N/A"),
            ("Date/Time", status.device_time or "N/A"),
        ]
        for name, value in rows:
            with ui.row().classes("gap-2"):
                ui.label(f"{name}:").classes("font-semibold")
                ui.label(value)


def _render_history() -> None:
    global history_signature
    if history_container is None:
        return
    entries = controller.ledger.entries
    signature = tuple(e.entry_id for e in entries)
    if signature == history_signature:
        return
    history_signature = signature
    history_container.clear()
    with history_container:
        if not entries:
            ui.label("No files played yet.").classes("text-sm text-gray-500")
        for entry in entries:
            with ui.row().classes("items-center gap-2"):
                ui.label(entry.file_name).classes("font-medium")
                ui.label(f"Played: {entry.played_at:%Y-%m-%d %H:%M:%S}").classes("text-xs text-gray-500")


def _render_files(force: bool = False) -> None:
    global files_signature
    if files_container is None:
        return
    matches = controller.files.search(file_search)
    signature = (file_search, controller.can_command, tuple((f.name, f.size) for f in matches))
    if signature == files_signature and not force:
        return
    files_signature = signature
    files_container.clear()
    with files_container:
        if not matches:
            ui.label("No files.").classes("text-sm text-gray-500")
        for descriptor in matches:
            _file_row(descriptor)


def _file_row(descriptor: FileDescriptor) -> None:
    name = descriptor.name
    with ui.row().classes("items-center gap-2 w-full"):
        ui.label(name).classes("grow")
        ui.label(descriptor.size_label).classes("text-xs text-gray-500 w-20")
        ui.button(icon="play_arrow", on_click=lambda n=name: _play_file(n)).props("dense flat") \
            .set_enabled(controller.can_command)
        if descriptor.previewable:
            ui.button(icon="visibility", on_click=lambda n=name: _preview_file(n)).props("dense flat") \
                .set_enabled(controller.can_command)
        ui.button(icon="delete", on_click=lambda n=name: _confirm_delete(n)).props("dense flat color=negative") \
            .set_enabled(controller.can_command)


def _set_file_search(value: str) -> None:
    global file_search
    file_search = value or ""
    _render_files()


def _render_preview() -> None:
    if preview_html is None:
        return
    preview_html.content = render_preview_svg(controller.pattern, controller.progress)


def _set_progress(value: float) -> None:
    controller.set_progress(value or 0.0)
    _render_preview()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

async def _play_pause() -> None:
    action = await _run_action("Play/pause", controller.play_pause)
    if action is not None:
        _append_status(f"Sent {action.value}")


async def _stop() -> None:
    await _run_action("Stop", controller.stop)


async def _home() -> None:
    await _run_action("Home", controller.home)


async def _set_home() -> None:
    await _run_action("Set home", controller.set_home)


async def _refresh_files() -> None:
    await _run_action("Refresh files", controller.refresh_files)
    _render_files(force=True)


async def _play_file(name: str) -> None:
    await _run_action(f"Play {name}", controller.play_file, name)


async def _preview_file(name: str) -> None:
    pattern = await _run_action(f"Preview {name}", controller.preview_file, name)
    if pattern is not None:
        if progress_slider is not None:
            progress_slider.value = 100
        _render_preview()


def _confirm_delete(name: str) -> None:
    with ui.dialog() as dialog, ui.card():
        ui.label(f"Delete {name} from the robot?")
        with ui.row().classes("gap-2"):
            ui.button("Cancel", on_click=dialog.close)

            async def _delete() -> None:
                dialog.close()
                await _run_action(f"Delete {name}", controller.delete_file, name)
                _render_files(force=True)

            ui.button("Delete", on_click=_delete).props("color=negative")
    dialog.open()


async def _handle_robot_upload(event: events.UploadEventArguments) -> None:
    content = event.content.read()
    name = event.name or "uploaded.thr"
    if not is_pattern_file(name):
        ui.notify(f"{name} is not a .thr or .seq file", type="warning")
        return
    await _run_action(f"Upload {name}", controller.upload_file, name, content)
    _render_files(force=True)


def _handle_simulator_upload(event: events.UploadEventArguments) -> None:
    content = event.content.read().decode("utf-8", errors="replace")
    name = event.name or "pattern.thr"
    controller.load_pattern_text(content, name)
    if progress_slider is not None:
        progress_slider.value = 100
    _append_status(f"Loaded pattern: {name} ({len(controller.pattern)} points)")
    _render_preview()


async def _upload_pattern() -> None:
    await _run_action("Upload pattern", controller.upload_pattern)


def _save_playlist_dialog() -> None:
    with ui.dialog() as dialog, ui.card():
        ui.label("Save gallery to playlist").classes("text-lg font-semibold")
        name_input = ui.input(label="Filename (without extension)")

        async def _save() -> None:
            dialog.close()
            filename = await _run_action("Save playlist", controller.save_playlist, name_input.value or "")
            if filename:
                ui.notify(f"Playlist {filename} created and uploaded successfully", type="positive")

        with ui.row().classes("gap-2"):
            ui.button("Cancel", on_click=dialog.close)
            ui.button("Save", on_click=_save)
    dialog.open()


async def _open_wifi_dialog() -> None:
    config = await _run_action("Load WiFi config", controller.load_network_config)
    if config is None:
        return
    with ui.dialog() as dialog, ui.card().classes("w-96"):
        ui.label("WiFi configuration").classes("text-lg font-semibold")
        mode = ui.toggle({"yes": "Client", "ap": "Access point"}, value=config.wifi)
        with ui.column().classes("w-full").bind_visibility_from(mode, "value", value="yes"):
            ssid = ui.input(label="SSID", value=config.ssid)
            password = ui.input(label="Password", value=config.password, password=True,
                                password_toggle_button=True)
            hostname = ui.input(label="Hostname", value=config.hostname)

        async def _save() -> None:
            saved = await _run_action(
                "Save WiFi config",
                controller.save_network_config,
                NetworkConfig(wifi=mode.value, ssid=ssid.value or "", password=password.value or "",
                              hostname=hostname.value or ""),
            )
            if saved is not None:
                ui.notify("WiFi configuration saved successfully", type="positive")
                dialog.close()

        async def _delete() -> None:
            await _run_action("Delete WiFi config", controller.delete_network_config)
            dialog.close()

        with ui.row().classes("gap-2"):
            ui.button("Cancel", on_click=dialog.close)
            ui.button("Save", on_click=_save)
            if config.exists:
                ui.button("Delete", on_click=_delete).props("color=negative")
    dialog.open()


# ---------------------------------------------------------------------------
# UI construction
# ---------------------------------------------------------------------------

def create_ui() -> None:
    global state_label, play_pause_button, stop_button, home_button, set_home_button
    global status_details, estimate_label, history_container, playlist_button
    global files_container, preview_html, pattern_label, upload_pattern_button
    global progress_slider, wifi_button, control_frame, status_area
    global files_signature, history_signature, status_signature

    files_signature = ()
    history_signature = ()
    status_signature = None
    config = controller.config

    ui.page_title("SandBot Dashboard")
    with ui.row().classes("w-full items-center justify-between"):
        ui.markdown("# SandBot")
        with ui.row().classes("items-center gap-2"):
            play_pause_button = ui.button(icon="pause", on_click=_play_pause).props("outline round")
            stop_button = ui.button(icon="stop", on_click=_stop).props("outline round")
            state_label = ui.label("offline").classes("text-lg font-semibold")

    with ui.tabs().classes("w-full") as tabs:
        config_tab = ui.tab("Configuration")
        status_tab = ui.tab("Status")
        files_tab = ui.tab("Files")
        simulator_tab = ui.tab("Simulator")
        control_tab = ui.tab("Control")
        control_tab.bind_visibility_from(
            controller.session, "config",
            backward=lambda c: c.control_mode is not ControlMode.DISABLED,
        )

    with ui.tab_panels(tabs, value=config_tab).classes("w-full"):
        with ui.tab_panel(config_tab):
            with ui.card().classes("w-full"):
                ui.label("Connection").classes("text-lg font-semibold")
                ui.input(
                    label="Robot address", value=config.device_address, placeholder="192.168.1.50",
                ).on("keydown.enter", lambda e: _apply_config(device_address=e.sender.value)) \
                    .on("blur", lambda e: _apply_config(device_address=e.sender.value))
                ui.label("Poll cycle (s)").classes("text-sm text-gray-500")
                ui.slider(
                    min=POLL_CYCLE_MIN, max=POLL_CYCLE_MAX, step=1, value=config.poll_cycle,
                ).props("label-always").on(
                    "change", lambda e: _apply_config(poll_cycle=int(e.sender.value))
                )
            with ui.card().classes("w-full"):
                ui.label("Control interface").classes("text-lg font-semibold")
                ui.toggle(
                    {mode.value: mode.value.title() for mode in ControlMode},
                    value=config.control_mode.value,
                    on_change=lambda e: _apply_config(control_mode=ControlMode(e.value)),
                )
                ui.input(
                    label="wLED address", value=config.secondary_address,
                ).on("blur", lambda e: _apply_config(secondary_address=e.sender.value))
            wifi_button = ui.button("WiFi configuration", on_click=_open_wifi_dialog)
            wifi_button.set_visibility(False)

        with ui.tab_panel(status_tab):
            with ui.card().classes("w-full"):
                ui.label("Robot status").classes("text-lg font-semibold")
                status_details = ui.column().classes("gap-1")
                estimate_label = ui.label("")
                with ui.row().classes("gap-2"):
                    home_button = ui.button("Home", icon="home", on_click=_home)
                    set_home_button = ui.button("Set home", icon="place", on_click=_set_home) \
                        .tooltip("Declare the current position as home (G92 X0 Y0)")
            with ui.expansion("Gallery").classes("w-full"):
                playlist_button = ui.button("Save gallery to playlist", on_click=_save_playlist_dialog)
                history_container = ui.column().classes("gap-1")

        with ui.tab_panel(files_tab):
            with ui.card().classes("w-full"):
                with ui.row().classes("items-center gap-2 w-full"):
                    ui.input(placeholder="Search files", on_change=lambda e: _set_file_search(e.value)) \
                        .props("clearable").classes("grow")
                    ui.button(icon="refresh", on_click=_refresh_files).props("flat")
                ui.upload(label="Upload .thr / .seq", auto_upload=True, on_upload=_handle_robot_upload) \
                    .props(f'accept="{",".join(PATTERN_EXTENSIONS)}"')
                files_container = ui.column().classes("w-full gap-1")

        with ui.tab_panel(simulator_tab):
            with ui.card().classes("w-full"):
                ui.upload(label="Load pattern", auto_upload=True, on_upload=_handle_simulator_upload) \
                    .props('accept=".thr"')
                pattern_label = ui.label("")
                preview_html = ui.html(render_preview_svg(controller.pattern, controller.progress)) \
                    .classes("w-full max-w-md")
                progress_slider = ui.slider(
                    min=0, max=100, step=1, value=controller.progress,
                    on_change=lambda e: _set_progress(e.value),
                ).props('label-always')
                upload_pattern_button = ui.button("Save to robot", on_click=_upload_pattern)

        with ui.tab_panel(control_tab):
            control_frame = ui.element("iframe").classes("w-full").style("height: 70vh; border: 0;")
            _update_control_frame()

    with ui.expansion("Status log").classes("w-full"):
        status_area = ui.textarea(value="").classes("w-full")
        status_area.props("readonly")

    ui.timer(0.5, _sync_status_to_ui)
    _sync_status_to_ui()


@app.get("/api/status")
def api_status() -> Dict:
    return controller.snapshot()


app.on_shutdown(controller.close)


def run(**kwargs) -> None:
    ui.run(title="SandBot", **kwargs)


@ui.page("/")
def index(hostIP: str = "", pollCycle: str = "", wledEnabled: str = "", wledAddress: str = "") -> None:
    params = {k: v for k, v in {
        "hostIP": hostIP, "pollCycle": pollCycle, "wledEnabled": wledEnabled, "wledAddress": wledAddress,
    }.items() if v}
    if params:
        try:
            controller.configure(SessionConfig.from_query(params))
        except ValueError as exc:
            _append_status(f"Ignoring URL settings: {exc}")
    create_ui()
