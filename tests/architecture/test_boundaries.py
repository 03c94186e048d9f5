from pytest_archon import archrule

CORE_MODULES = [
    "courier.attempts",
    "courier.connection",
    "courier.dead_letter",
    "courier.delivery",
    "courier.dispatcher",
    "courier.producer",
    "courier.registry",
    "courier.retry",
]


def test_core_independence() -> None:
    """
    The dispatch core knows nothing about concrete handlers.
    Handlers plug in through the registry; only bootstrap wires them.
    """
    rule = archrule("core_is_independent")
    for module in CORE_MODULES:
        rule = rule.match(module)
    (
        rule.should_not_import("courier.mail*")
        .should_not_import("courier.bootstrap*")
        .should_not_import("courier.__main__*")
        .check("courier")
    )


def test_mail_depends_only_on_ports() -> None:
    """
    The mail package talks to the core through ports, the producer and the
    serializer. It must not reach into the dispatcher.
    """
    (
        archrule("mail_layering")
        .match("courier.mail*")
        .should_not_import("courier.dispatcher*")
        .should_not_import("courier.bootstrap*")
        .check("courier")
    )


def test_primitives_isolation() -> None:
    """
    Exceptions, envelope and correlation are leaf modules:
    no broker client, no other courier modules beyond exceptions.
    """
    (
        archrule("primitives_isolation")
        .match("courier.exceptions")
        .match("courier.envelope")
        .match("courier.correlation")
        .should_not_import("aio_pika*")
        .should_not_import("aiormq*")
        .should_not_import("courier.dispatcher*")
        .should_not_import("courier.producer*")
        .check("courier")
    )


def test_config_isolation() -> None:
    """
    Settings are plain data; components receive values, not the environment.
    """
    (
        archrule("config_isolation")
        .match("courier.config")
        .should_not_import("courier.dispatcher*")
        .should_not_import("courier.producer*")
        .should_not_import("courier.connection*")
        .should_not_import("courier.mail*")
        .check("courier")
    )
