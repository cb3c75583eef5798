"""Tests for the OpenCV camera adapter, using fake captures."""

import threading

import numpy as np
import pytest

from estate_lens.adapters.camera.opencv_camera import (
    DEFAULT_PROPERTIES,
    CameraStream,
    CaptureProperties,
    OpenCVCamera,
)
from estate_lens.application.ports.camera import CameraSource, MediaStream
from estate_lens.domain.value_objects.config import CaptureOptions
from estate_lens.exceptions import CameraUnavailable
from estate_lens.infrastructure.vision_loader import VisionLibraryLoader

from .test_vision_loader import CountingImporter, fake_cv2


class FakeCapture:
    """Stand-in for cv2.VideoCapture."""

    def __init__(self, device, opened=True, readable=True, reject_props=False):
        self.device = device
        self.opened = opened
        self.readable = readable
        self.reject_props = reject_props
        self.props = {}
        self.release_count = 0
        frame = np.zeros((6, 8, 3), dtype=np.uint8)
        frame[..., 0] = 255  # blue in BGR
        self.frame = frame

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        if self.reject_props:
            raise RuntimeError("unsupported property")
        self.props[prop] = value
        return True

    def read(self):
        if not self.readable:
            return False, None
        return True, self.frame.copy()

    def release(self):
        self.release_count += 1


class FakeFactory:
    """Hands out pre-configured captures in order."""

    def __init__(self, *captures):
        self.captures = list(captures)
        self.devices = []

    def __call__(self, device):
        self.devices.append(device)
        capture = self.captures.pop(0)
        capture.device = device
        return capture


class TestAcquireStream:
    """Constraint negotiation."""

    def test_rich_constraints_applied(self):
        capture = FakeCapture(0)
        camera = OpenCVCamera(capture_factory=FakeFactory(capture))
        stream = camera.acquire_stream(CaptureOptions(width=1280, height=None))

        assert stream.active
        assert capture.props[DEFAULT_PROPERTIES.frame_width] == 1280
        assert capture.props[DEFAULT_PROPERTIES.frame_height] == 720
        assert capture.props[DEFAULT_PROPERTIES.autofocus] == 1
        stream.stop()

    def test_retries_once_without_constraints(self):
        rich = FakeCapture(0, reject_props=True)
        basic = FakeCapture(0)
        factory = FakeFactory(rich, basic)
        stream = OpenCVCamera(capture_factory=factory).acquire_stream()

        assert rich.release_count == 1
        assert basic.props == {}
        assert len(factory.devices) == 2
        stream.stop()

    def test_unreadable_rich_stream_retries(self):
        rich = FakeCapture(0, readable=False)
        basic = FakeCapture(0)
        stream = OpenCVCamera(capture_factory=FakeFactory(rich, basic)).acquire_stream()
        assert rich.release_count == 1
        assert stream.read_frame().size == (8, 6)

    def test_unavailable_after_second_failure(self):
        factory = FakeFactory(FakeCapture(0, opened=False), FakeCapture(0, opened=False))
        with pytest.raises(CameraUnavailable) as excinfo:
            OpenCVCamera(capture_factory=factory).acquire_stream()
        assert excinfo.value.device_index == 0
        assert len(factory.devices) == 2

    def test_factory_errors_become_unavailable(self):
        def factory(device):
            raise OSError("permission denied")

        with pytest.raises(CameraUnavailable):
            OpenCVCamera(capture_factory=factory).acquire_stream()

    def test_device_from_facing_mode(self):
        factory = FakeFactory(FakeCapture(0))
        OpenCVCamera(capture_factory=factory).acquire_stream(CaptureOptions(facing_mode="user")).stop()
        assert factory.devices == [1]

    def test_explicit_device_index(self):
        factory = FakeFactory(FakeCapture(0))
        OpenCVCamera(capture_factory=factory).acquire_stream(CaptureOptions(device_index=3)).stop()
        assert factory.devices == [3]

    def test_property_ids_from_vision_library(self):
        capture = FakeCapture(0)
        module = fake_cv2(
            VideoCapture=FakeFactory(capture),
            CAP_PROP_FRAME_WIDTH=103,
            CAP_PROP_FRAME_HEIGHT=104,
            CAP_PROP_AUTO_EXPOSURE=121,
            CAP_PROP_AUTOFOCUS=139,
            CAP_PROP_AUTO_WB=144,
        )
        loader = VisionLibraryLoader(importer=CountingImporter(module))
        stream = OpenCVCamera(loader=loader).acquire_stream(CaptureOptions(width=640, height=480))

        assert capture.props == {103: 640, 104: 480, 139: 1, 144: 1, 121: 3}
        stream.stop()

    def test_injected_property_ids(self):
        capture = FakeCapture(0)
        props = CaptureProperties(frame_width=1, frame_height=2, auto_exposure=5,
                                  autofocus=3, auto_wb=4)
        camera = OpenCVCamera(capture_factory=FakeFactory(capture), properties=props)
        camera.acquire_stream(CaptureOptions(width=640, height=480)).stop()
        assert capture.props == {1: 640, 2: 480, 3: 1, 4: 1, 5: 3}

    def test_missing_library_is_unavailable(self):
        loader = VisionLibraryLoader(importer=CountingImporter(failures=1))
        with pytest.raises(CameraUnavailable):
            OpenCVCamera(loader=loader).acquire_stream()

    def test_satisfies_port(self):
        camera = OpenCVCamera(capture_factory=FakeFactory(FakeCapture(0)))
        assert isinstance(camera, CameraSource)
        stream = camera.acquire_stream()
        assert isinstance(stream, MediaStream)
        stream.stop()


class TestCameraStream:
    """Frame access and teardown."""

    def test_frames_are_rgb(self):
        frame = CameraStream(FakeCapture(0), 0).read_frame()
        assert frame.pixels[0, 0].tolist() == [0, 0, 255]

    def test_capture_photo(self):
        photo = CameraStream(FakeCapture(0), 0).capture_photo()
        assert photo.name.startswith("capture-")
        assert photo.name.endswith(".jpg")
        assert photo.content_type == "image/jpeg"
        assert photo.data[:2] == b"\xff\xd8"

    def test_stop_is_idempotent(self):
        capture = FakeCapture(0)
        stream = CameraStream(capture, 0)
        stream.stop()
        stream.stop()
        assert capture.release_count == 1
        assert not stream.active

    def test_concurrent_stop_releases_once(self):
        capture = FakeCapture(0)
        stream = CameraStream(capture, 0)
        threads = [threading.Thread(target=stream.stop) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert capture.release_count == 1

    def test_read_after_stop(self):
        stream = CameraStream(FakeCapture(0), 0)
        stream.stop()
        with pytest.raises(CameraUnavailable):
            stream.read_frame()

    def test_failed_read(self):
        with pytest.raises(CameraUnavailable):
            CameraStream(FakeCapture(0, readable=False), 0).read_frame()

    def test_context_manager_stops_on_error(self):
        capture = FakeCapture(0)
        with pytest.raises(RuntimeError):
            with CameraStream(capture, 0):
                raise RuntimeError("navigated away")
        assert capture.release_count == 1
