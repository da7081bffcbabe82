from pigg.application.status_messages import StatusLevel, StatusMessage, StatusMessageQueue


def test_first_message_is_shown_immediately():
    queue = StatusMessageQueue()

    queue.add_message(StatusMessage.info("shown"))

    assert queue.current_message == StatusMessage.info("shown")
    assert queue.showing_info_message()
    assert len(queue) == 0


def test_errors_come_before_warnings_before_info():
    queue = StatusMessageQueue()
    queue.add_message(StatusMessage.info("shown"))

    queue.add_message(StatusMessage.info("last"))
    queue.add_message(StatusMessage.error("first", "Details"))
    queue.add_message(StatusMessage.warning("middle"))
    assert len(queue) == 3

    shown = []
    for _ in range(3):
        queue.clear_message()
        shown.append(queue.current_message.text)

    assert shown == ["first", "middle", "last"]

    queue.clear_message()
    assert queue.current_message is None
    assert not queue.showing_info_message()


def test_same_level_is_first_in_first_out():
    queue = StatusMessageQueue()
    queue.add_message(StatusMessage.warning("current"))

    for text in ("a", "b", "c"):
        queue.add_message(StatusMessage.error(text))

    order = []
    while queue.current_message is not None:
        queue.clear_message()
        if queue.current_message is not None:
            order.append(queue.current_message.text)

    assert order == ["a", "b", "c"]


def test_error_keeps_its_details():
    message = StatusMessage.error("Connection failed", "relay unreachable")

    assert message.level == StatusLevel.ERROR
    assert message.details == "relay unreachable"
