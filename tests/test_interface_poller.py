"""Tests for the psutil-backed interface poller."""

import ipaddress
import socket
import threading
from collections import namedtuple
from unittest.mock import patch

import psutil
import pytest

from netreach.core.dispatch import SerialQueue
from netreach.core.flags import ReachabilityFlags as F
from netreach.core.monitor import new_monitor
from netreach.core.status import Status
from netreach.providers.interface_poller import (
    InterfacePollingProvider,
    InterfaceState,
    compute_flags,
    read_interfaces,
)

Stat = namedtuple("Stat", ["isup", "duplex", "speed", "mtu"])
Addr = namedtuple("Addr", ["family", "address", "netmask", "broadcast", "ptp"])


def iface(name, is_up=True, addresses=(), cellular=False, transient=False):
    return InterfaceState(
        name=name,
        is_up=is_up,
        addresses=[ipaddress.ip_interface(a) for a in addresses],
        cellular=cellular,
        transient=transient,
    )


LOOPBACK = iface("lo", addresses=["127.0.0.1/8", "::1/128"])
WIFI = iface("wlan0", addresses=["192.168.1.20/24", "fe80::1/64"])
CELLULAR = iface("wwan0", addresses=["10.64.3.2/30"], cellular=True)
PPP_DOWN = iface("ppp0", is_up=False, transient=True)


class TestComputeFlags:
    def test_default_route_via_wifi(self):
        assert compute_flags("0.0.0.0", [LOOPBACK, WIFI]) == F.REACHABLE

    def test_default_route_prefers_non_cellular(self):
        assert compute_flags("0.0.0.0", [LOOPBACK, CELLULAR, WIFI]) == F.REACHABLE

    def test_default_route_cellular_only(self):
        assert compute_flags("0.0.0.0", [LOOPBACK, CELLULAR]) == F.REACHABLE | F.IS_WWAN

    def test_nothing_up(self):
        assert compute_flags("0.0.0.0", [LOOPBACK, iface("eth0", is_up=False)]) == F(0)

    def test_link_local_only_is_unreachable(self):
        assert compute_flags("0.0.0.0", [LOOPBACK, iface("eth0", addresses=["169.254.3.4/16"])]) == F(0)

    def test_dormant_transient_link_requires_connection(self):
        flags = compute_flags("0.0.0.0", [LOOPBACK, PPP_DOWN])

        assert flags == F.REACHABLE | F.CONNECTION_REQUIRED | F.TRANSIENT_CONNECTION
        assert flags.is_connection_required_and_transient_connection

    def test_active_transient_link(self):
        ppp = iface("ppp0", addresses=["10.0.0.2/32"], transient=True)
        assert compute_flags("0.0.0.0", [LOOPBACK, ppp]) == F.REACHABLE | F.TRANSIENT_CONNECTION

    def test_hostname_judged_by_default_route(self):
        assert compute_flags("example.com", [LOOPBACK, CELLULAR]) == F.REACHABLE | F.IS_WWAN

    @pytest.mark.parametrize("target", ["localhost", "127.0.0.1", "::1"])
    def test_loopback_targets_are_local(self, target):
        assert compute_flags(target, [LOOPBACK]) == F.REACHABLE | F.IS_LOCAL_ADDRESS | F.IS_DIRECT

    def test_own_address_is_local(self):
        flags = compute_flags("192.168.1.20", [LOOPBACK, WIFI])
        assert flags == F.REACHABLE | F.IS_LOCAL_ADDRESS | F.IS_DIRECT

    def test_same_subnet_is_direct(self):
        assert compute_flags("192.168.1.1", [LOOPBACK, WIFI]) == F.REACHABLE | F.IS_DIRECT

    def test_same_subnet_on_cellular(self):
        flags = compute_flags("10.64.3.1", [LOOPBACK, CELLULAR])
        assert flags == F.REACHABLE | F.IS_DIRECT | F.IS_WWAN

    def test_remote_address_uses_route(self):
        assert compute_flags("93.184.216.34", [LOOPBACK, WIFI]) == F.REACHABLE


class TestReadInterfaces:
    @patch("netreach.providers.interface_poller.psutil.net_if_addrs")
    @patch("netreach.providers.interface_poller.psutil.net_if_stats")
    def test_read_interfaces(self, mock_stats, mock_addrs):
        mock_stats.return_value = {
            "lo": Stat(True, 0, 0, 65536),
            "wlan0": Stat(True, 2, 0, 1500),
            "wwan0": Stat(False, 0, 0, 1500),
        }
        mock_addrs.return_value = {
            "lo": [Addr(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None)],
            "wlan0": [
                Addr(psutil.AF_LINK, "aa:bb:cc:dd:ee:ff", None, None, None),
                Addr(socket.AF_INET, "192.168.1.20", "255.255.255.0", None, None),
                Addr(socket.AF_INET6, "fe80::1%wlan0", "ffff:ffff:ffff:ffff::", None, None),
            ],
        }

        interfaces = {i.name: i for i in read_interfaces(["wwan*"], ["ppp*"])}

        assert set(interfaces) == {"lo", "wlan0", "wwan0"}
        assert interfaces["lo"].is_loopback is True
        assert interfaces["wlan0"].is_up is True
        assert [str(a) for a in interfaces["wlan0"].addresses] == ["192.168.1.20/24", "fe80::1/64"]
        assert [str(a) for a in interfaces["wlan0"].routable_addresses] == ["192.168.1.20/24"]
        assert interfaces["wwan0"].cellular is True
        assert interfaces["wwan0"].is_up is False
        assert interfaces["wwan0"].addresses == []

    def test_get_flags_absorbs_read_errors(self):
        provider = InterfacePollingProvider()
        handle = provider.create_with_address("0.0.0.0")

        with patch.object(provider, "read_interfaces", side_effect=OSError("interface table unavailable")):
            assert handle.get_flags() is None

        handle.release()


class TestProvider:
    def test_rejects_invalid_targets(self):
        provider = InterfacePollingProvider()
        assert provider.create_with_name("bad host") is None
        assert provider.create_with_address("example.com") is None
        assert provider.create_with_name("example.com") is not None

    def test_patterns_from_arguments(self):
        provider = InterfacePollingProvider(cellular_patterns=["usb*"], transient_patterns=["tun*"])
        assert provider.cellular_patterns == ["usb*"]
        assert provider.transient_patterns == ["tun*"]

    def test_polling_delivers_changes(self):
        provider = InterfacePollingProvider(poll_interval=0.01)
        state = {"interfaces": [LOOPBACK, WIFI]}
        received = []
        got_cellular = threading.Event()

        def on_flags(flags):
            received.append(flags)
            if flags.is_wwan:
                got_cellular.set()

        with patch.object(provider, "read_interfaces", side_effect=lambda: state["interfaces"]):
            handle = provider.create_with_address("0.0.0.0")
            queue = SerialQueue(label="PollTest")
            try:
                handle.set_callback(on_flags)
                handle.set_dispatch_queue(queue)

                state["interfaces"] = [LOOPBACK, CELLULAR]
                assert got_cellular.wait(2.0)
            finally:
                handle.release()
                queue.close(wait=True)

        assert received[-1] == F.REACHABLE | F.IS_WWAN
        # Unchanged polls are not delivered
        assert len(received) == len(set(received))

    def test_release_stops_poller(self):
        provider = InterfacePollingProvider(poll_interval=0.01)
        with patch.object(provider, "read_interfaces", return_value=[LOOPBACK, WIFI]):
            handle = provider.create_with_address("0.0.0.0")
            queue = SerialQueue(label="PollStop")
            handle.set_callback(lambda flags: None)
            handle.set_dispatch_queue(queue)
            thread = handle._thread
            assert thread is not None and thread.is_alive()

            handle.release()
            queue.close(wait=True)

        assert not thread.is_alive()
        assert handle._thread is None

    def test_monitor_over_poller(self):
        provider = InterfacePollingProvider(poll_interval=0.01)
        state = {"interfaces": [LOOPBACK, WIFI]}
        statuses = []
        went_down = threading.Event()

        def on_change(m):
            statuses.append(m.status)
            if m.status is Status.UNREACHABLE:
                went_down.set()

        with patch.object(provider, "read_interfaces", side_effect=lambda: state["interfaces"]):
            monitor = new_monitor(provider=provider, on_change=on_change)
            try:
                monitor.start()
                assert monitor.wait_idle(2.0)
                state["interfaces"] = [LOOPBACK]
                assert went_down.wait(2.0)
            finally:
                monitor.stop()

        assert statuses[0] is Status.WIFI
        assert statuses[-1] is Status.UNREACHABLE
