import pytest

from pigg.application.hardware_sync_service import NO_HARDWARE, HardwareSyncService
from pigg.domain.events.hardware_events import HardwareEventType
from pigg.domain.gpio.enums import ConfigSyncState, InputPull
from pigg.domain.gpio.pin_description import HardwareDescription, HardwareDetails, PinDescription, PinDescriptionSet
from pigg.domain.gpio.pin_function import NONE, Input, NoFunction, Output
from pigg.domain.gpio.pin_state import LevelChange
from pigg.domain.models.hardware_config import HardwareConfig, PinConfig
from pigg.infrastructure.backend.backend_handle import BackendHandle
from pigg.infrastructure.gpio.fake_hardware import FakeHardware


class RecordingHandle:
    def __init__(self):
        self.sent = []
        self.closed = False

    def send(self, event):
        if self.closed:
            return False
        self.sent.append(event)
        return True

    def close(self):
        self.closed = True

    def types(self):
        return [event.event_type for event in self.sent]


def output_17_config():
    return HardwareConfig(configured_pins=[PinConfig(bcm_pin_number=17, function=Output(level=True))])


@pytest.fixture
def sync():
    return HardwareSyncService(chart_samples=8)


@pytest.fixture
def description():
    return FakeHardware().description()


def test_recording_handle_satisfies_the_protocol():
    assert isinstance(RecordingHandle(), BackendHandle)


def test_config_loaded_before_ready_is_shown_then_sent_once(sync, description):
    sync.apply_loaded_config(output_17_config())

    assert sync.pin_state(11).function == Output(level=True)
    assert sync.pin_state(11).level is True
    assert sync.sync_state == ConfigSyncState.PENDING
    assert sync.hw_model() == NO_HARDWARE

    handle = RecordingHandle()
    sync.on_ready(description, handle)

    assert handle.types() == [HardwareEventType.NEW_CONFIG]
    assert handle.sent[0].payload.config.same_pins(output_17_config())
    assert sync.sync_state == ConfigSyncState.APPLIED
    assert sync.pin_state(11).function == Output(level=True)


def test_ready_with_empty_config_still_sends_one_new_config(sync, description):
    handle = RecordingHandle()

    sync.on_ready(description, handle)

    assert handle.types() == [HardwareEventType.NEW_CONFIG]
    assert len(handle.sent[0].payload.config) == 0


def test_nothing_is_sent_before_ready(sync, description):
    sync.select_function(11, 17, Input())
    sync.set_output_level(18, LevelChange(new_level=True))
    sync.new_config(output_17_config())

    handle = RecordingHandle()
    sync.on_ready(description, handle)

    assert handle.types() == [HardwareEventType.NEW_CONFIG]


def test_selecting_the_same_function_twice_sends_once(sync, description):
    handle = RecordingHandle()
    sync.on_ready(description, handle)

    assert sync.select_function(11, 17, Input(pull=InputPull.PULL_UP)) is True
    assert sync.select_function(11, 17, Input(pull=InputPull.PULL_UP)) is False

    assert handle.types() == [HardwareEventType.NEW_CONFIG, HardwareEventType.NEW_PIN_CONFIG]
    assert len(sync.config) == 1


def test_select_function_appends_new_pins_in_order(sync, description):
    sync.on_ready(description, RecordingHandle())

    sync.select_function(11, 17, Input())
    sync.select_function(7, 4, Output())
    sync.select_function(11, 17, Output())

    assert [entry.bcm_pin_number for entry in sync.config] == [17, 4]
    assert sync.config.get(17) == Output()


def test_select_function_rejects_mismatched_or_forbidden_pins(sync):
    with pytest.raises(ValueError):
        sync.select_function(11, 18, Input())

    with pytest.raises(ValueError):
        sync.select_function(27, 0, Output())


@pytest.mark.parametrize("board, bcm", [(0, None), (41, None), (1, None), (-1, 21)])
def test_select_function_on_a_non_gpio_position_changes_nothing(sync, description, board, bcm):
    handle = RecordingHandle()
    sync.on_ready(description, handle)
    sync.select_function(40, 21, Input())
    sent_before = list(handle.sent)

    with pytest.raises(ValueError):
        sync.select_function(board, bcm, NONE)

    assert sync.pin_state(40).function == Input()
    assert [(entry.bcm_pin_number, entry.function) for entry in sync.config] == [(21, Input())]
    assert handle.sent == sent_before


def test_out_of_range_board_positions_are_not_found(sync):
    assert sync.pin_state(0) is None
    assert sync.pin_state(41) is None
    assert sync.pin_state(40) is not None


def test_input_change_for_input_pin_updates_live_state(sync, description):
    sync.on_ready(description, RecordingHandle())
    sync.select_function(11, 17, Input())

    assert sync.on_input_change(17, LevelChange(new_level=True)) is True

    assert sync.pin_state(11).level is True
    assert len(sync.pin_state(11).samples()) == 1


def test_stale_input_change_is_ignored(sync, description):
    sync.on_ready(description, RecordingHandle())
    sync.select_function(11, 17, Input())
    sync.select_function(11, 17, Output(level=False))
    before = sync.pin_state(11).level

    assert sync.on_input_change(17, LevelChange(new_level=True)) is False
    assert sync.pin_state(11).level == before
    assert sync.on_input_change(99, LevelChange(new_level=True)) is False


def test_output_level_is_optimistic_and_forwarded(sync, description):
    handle = RecordingHandle()
    sync.on_ready(description, handle)
    sync.select_function(11, 17, Output())

    sync.set_output_level(17, LevelChange(new_level=True))

    assert sync.pin_state(11).level is True
    assert handle.types()[-1] == HardwareEventType.OUTPUT_LEVEL_CHANGED


def test_reconnect_sends_latest_config_exactly_once(sync, description):
    first = RecordingHandle()
    sync.on_ready(description, first)
    sync.select_function(11, 17, Input())

    sync.on_disconnected()
    assert first.closed
    assert sync.sync_state == ConfigSyncState.PENDING
    assert sync.hw_description() == NO_HARDWARE

    sync.select_function(7, 4, Output(level=True))
    assert sync.pin_state(7).function == Output(level=True)

    second = RecordingHandle()
    sync.on_ready(description, second)

    assert second.types() == [HardwareEventType.NEW_CONFIG]
    assert second.sent[0].payload.config.as_dict() == {17: Input(), 4: Output(level=True)}
    assert first.sent[-1].event_type == HardwareEventType.NEW_PIN_CONFIG


def test_new_config_after_ready_replaces_and_forwards(sync, description):
    handle = RecordingHandle()
    sync.on_ready(description, handle)
    sync.select_function(7, 4, Input())

    sync.new_config(output_17_config())

    assert handle.types()[-1] == HardwareEventType.NEW_CONFIG
    assert isinstance(sync.pin_state(7).function, NoFunction)
    assert sync.pin_state(11).function == Output(level=True)
    assert sync.sync_state == ConfigSyncState.APPLIED


def test_config_entries_for_unknown_pins_are_ignored(sync):
    config = HardwareConfig(configured_pins=[PinConfig(bcm_pin_number=40, function=Input())])

    sync.apply_loaded_config(config)

    assert all(state.function == NONE for state in sync.pin_states)
    assert len(sync.config) == 1


def test_smaller_board_resizes_live_state(sync):
    pins = PinDescriptionSet(
        pins=[
            PinDescription(board_pin_number=1, name="Ground"),
            PinDescription(board_pin_number=2, bcm_pin_number=17, name="GPIO17", options=[Input(), Output()]),
        ]
    )
    details = HardwareDetails(hardware="test", revision="1", serial="0", model="Tiny Board")
    sync.apply_loaded_config(output_17_config())

    sync.on_ready(HardwareDescription(details=details, pins=pins), RecordingHandle())

    assert len(sync.pin_states) == 2
    assert sync.pin_state(2).function == Output(level=True)
    assert sync.hw_model() == "Tiny Board"

    sync.on_disconnected()
    assert len(sync.pin_states) == 40
    assert sync.pin_state(11).function == Output(level=True)


def test_chart_tick_extends_only_configured_pins(sync, description):
    sync.on_ready(description, RecordingHandle())
    sync.select_function(11, 17, Input())
    sync.on_input_change(17, LevelChange(new_level=True))

    sync.refresh_charts()
    sync.refresh_charts()

    assert len(sync.pin_state(11).samples()) == 3
    assert sync.pin_state(12).samples() == []


def test_hardware_strings(sync, description):
    assert sync.hw_description() == NO_HARDWARE

    sync.on_ready(description, RecordingHandle())

    assert sync.hw_model() == "Fake Hardware"
    assert "Model: Fake Hardware" in sync.hw_description()
