"""
The device automation contract and its script-facing bridge.

`AutomationHost` is what an embedding application implements (an
accessibility service, an ADB client, a test double). `AutomationBridge`
turns a host into natives. Elements found on screen never leave Python:
scripts receive a plain object snapshot tagged with `__nodeId`, and the
bridge maps that id back to the host's element when the script passes the
object to `Click`, `GetText` and friends.
"""
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from autoscript.autoscript_natives import native_function, collect_natives
from autoscript.autoscript_values import ScriptRuntimeError, NativeFunction, is_int

DEFAULT_SWIPE_DURATION = 300

GLOBAL_ACTIONS = ('back', 'home', 'recents', 'notifications', 'quick_settings')


@dataclass
class Bounds:
    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def center(self) -> Tuple[int, int]:
        return (self.left + self.right) // 2, (self.top + self.bottom) // 2


@dataclass
class ElementInfo:
    """A UI element as reported by the host."""
    text: str = ""
    content_description: str = ""
    class_name: str = ""
    resource_id: str = ""
    clickable: bool = False
    long_clickable: bool = False
    editable: bool = False
    scrollable: bool = False
    visible: bool = True
    bounds: Bounds = field(default_factory=Bounds)


class AutomationHost(ABC):
    """The required base class for a device that scripts can drive.

    Action methods return True when the device accepted the action.
    Finders return the first matching element or None.
    """

    @abstractmethod
    def tap(self, x: int, y: int) -> bool: raise NotImplementedError
    @abstractmethod
    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration: int) -> bool: raise NotImplementedError
    @abstractmethod
    def input_text(self, text: str) -> bool: raise NotImplementedError

    @abstractmethod
    def find_by_text(self, text: str) -> Optional[ElementInfo]: raise NotImplementedError
    @abstractmethod
    def find_by_resource_id(self, resource_id: str) -> Optional[ElementInfo]: raise NotImplementedError
    @abstractmethod
    def find_by_content_desc(self, description: str) -> Optional[ElementInfo]: raise NotImplementedError

    @abstractmethod
    def click(self, element: ElementInfo) -> bool: raise NotImplementedError
    @abstractmethod
    def long_click(self, element: ElementInfo) -> bool: raise NotImplementedError
    @abstractmethod
    def scroll(self, element: ElementInfo, forward: bool) -> bool: raise NotImplementedError

    @abstractmethod
    def perform_global_action(self, action: str) -> bool:
        """One of GLOBAL_ACTIONS."""
        raise NotImplementedError

    @abstractmethod
    def device_info(self) -> Dict[str, Any]: raise NotImplementedError

    def press_back(self) -> bool:
        return self.perform_global_action('back')

    def press_home(self) -> bool:
        return self.perform_global_action('home')

    def press_recents(self) -> bool:
        return self.perform_global_action('recents')

    def open_notifications(self) -> bool:
        return self.perform_global_action('notifications')

    def open_quick_settings(self) -> bool:
        return self.perform_global_action('quick_settings')


# ===================================================================
# Bridge
# ===================================================================

def _require_int(value: Any, name: str) -> int:
    if not is_int(value):
        raise ScriptRuntimeError(f"{name} must be an integer")
    return value


def _require_string(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ScriptRuntimeError(f"{name} must be a string")
    return value


def _require_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ScriptRuntimeError(f"{name} must be a boolean")
    return value


class AutomationBridge:
    """Exposes an AutomationHost to scripts as natives."""

    def __init__(self, host: AutomationHost):
        self.host = host
        self._nodes: Dict[int, ElementInfo] = {}
        self._next_node_id = 1

    def natives(self) -> Dict[str, NativeFunction]:
        return collect_natives(self)

    def release_elements(self):
        """Invalidate every handle given out so far."""
        self._nodes.clear()

    # --- Node wrapping/unwrapping ---

    def _wrap_element(self, element: Optional[ElementInfo]) -> Optional[Dict[str, Any]]:
        if element is None:
            return None
        node_id = self._next_node_id
        self._next_node_id += 1
        self._nodes[node_id] = element
        return {
            '__nodeId': node_id,
            'text': element.text or "",
            'contentDescription': element.content_description or "",
            'className': element.class_name or "",
            'resourceId': element.resource_id or "",
            'clickable': bool(element.clickable),
            'editable': bool(element.editable),
            'scrollable': bool(element.scrollable),
        }

    def _unwrap_element(self, value: Any) -> ElementInfo:
        if not isinstance(value, dict):
            raise ScriptRuntimeError("Expected element object")
        node_id = value.get('__nodeId')
        if not is_int(node_id):
            raise ScriptRuntimeError("Invalid element object")
        element = self._nodes.get(node_id)
        if element is None:
            raise ScriptRuntimeError("Element no longer valid")
        return element

    # --- UI automation ---

    @native_function
    def _tap(self, x, y):
        return bool(self.host.tap(_require_int(x, "x"), _require_int(y, "y")))

    @native_function
    def _swipe(self, x1, y1, x2, y2, duration=DEFAULT_SWIPE_DURATION):
        return bool(self.host.swipe(
            _require_int(x1, "x1"), _require_int(y1, "y1"),
            _require_int(x2, "x2"), _require_int(y2, "y2"),
            _require_int(duration, "duration"),
        ))

    @native_function
    def _input_text(self, text):
        return bool(self.host.input_text(_require_string(text, "text")))

    @native_function
    def _find_by_text(self, text):
        return self._wrap_element(self.host.find_by_text(_require_string(text, "text")))

    @native_function
    def _find_by_resource_id(self, resource_id):
        return self._wrap_element(self.host.find_by_resource_id(_require_string(resource_id, "resourceId")))

    @native_function
    def _find_by_content_desc(self, description):
        return self._wrap_element(self.host.find_by_content_desc(_require_string(description, "description")))

    @native_function
    def _click(self, element):
        return bool(self.host.click(self._unwrap_element(element)))

    @native_function
    def _long_click(self, element):
        return bool(self.host.long_click(self._unwrap_element(element)))

    @native_function
    def _scroll(self, element, forward):
        node = self._unwrap_element(element)
        return bool(self.host.scroll(node, _require_bool(forward, "forward")))

    # --- Global actions ---

    @native_function
    def _press_back(self):
        return bool(self.host.press_back())

    @native_function
    def _press_home(self):
        return bool(self.host.press_home())

    @native_function
    def _press_recents(self):
        return bool(self.host.press_recents())

    @native_function
    def _open_notifications(self):
        return bool(self.host.open_notifications())

    @native_function
    def _open_quick_settings(self):
        return bool(self.host.open_quick_settings())

    # --- Element queries ---

    @native_function
    def _get_text(self, element):
        return self._unwrap_element(element).text or ""

    @native_function
    def _get_bounds(self, element):
        bounds = self._unwrap_element(element).bounds
        return {
            'left': bounds.left,
            'top': bounds.top,
            'right': bounds.right,
            'bottom': bounds.bottom,
            'width': bounds.width,
            'height': bounds.height,
        }

    @native_function
    def _is_visible(self, element):
        return bool(self._unwrap_element(element).visible)

    @native_function
    def _device_info(self):
        return dict(self.host.device_info())


# ===================================================================
# Simulated device
# ===================================================================

_ELEMENT_KEYS = {
    'text': 'text',
    'content_description': 'content_description',
    'contentDescription': 'content_description',
    'class_name': 'class_name',
    'className': 'class_name',
    'resource_id': 'resource_id',
    'resourceId': 'resource_id',
    'clickable': 'clickable',
    'long_clickable': 'long_clickable',
    'longClickable': 'long_clickable',
    'editable': 'editable',
    'scrollable': 'scrollable',
    'visible': 'visible',
}

DEFAULT_DEVICE = {
    'model': 'Simulated Device',
    'manufacturer': 'autoscript',
    'androidVersion': '14',
    'sdk': 34,
    'screenWidth': 1080,
    'screenHeight': 2400,
}


def element_from_dict(data: Dict[str, Any]) -> ElementInfo:
    """Build an ElementInfo from a screen-description entry."""
    kwargs = {}
    for key, value in data.items():
        if key == 'bounds':
            if isinstance(value, dict):
                kwargs['bounds'] = Bounds(**{k: int(v) for k, v in value.items()})
            else:
                left, top, right, bottom = (int(v) for v in value)
                kwargs['bounds'] = Bounds(left, top, right, bottom)
            continue
        attr = _ELEMENT_KEYS.get(key)
        if attr is None:
            raise ValueError(f"Unknown element attribute: {key!r}")
        kwargs[attr] = value
    for attr in ('text', 'content_description', 'class_name', 'resource_id'):
        if attr in kwargs:
            kwargs[attr] = "" if kwargs[attr] is None else str(kwargs[attr])
    return ElementInfo(**kwargs)


class SimulatedHost(AutomationHost):
    """An in-memory device: a fixed list of elements and an action log.

    Every action appends a tuple to `actions`, e.g. ('tap', 10, 20) or
    ('click', element). Clicking follows the device rules: elements that
    are not clickable (or not editable, for text input) report failure.
    """

    def __init__(self, elements: Optional[List[ElementInfo]] = None,
                 device: Optional[Dict[str, Any]] = None):
        self.elements: List[ElementInfo] = list(elements or [])
        self.device = {**DEFAULT_DEVICE, **(device or {})}
        self.actions: List[Tuple] = []
        self.focused: Optional[ElementInfo] = None

    @classmethod
    def from_yaml(cls, text: str) -> 'SimulatedHost':
        """Load a screen description:

            device: {model: Pixel 7, screenWidth: 1080, screenHeight: 2400}
            elements:
              - {text: Login, resourceId: com.app:id/login, clickable: true,
                 bounds: [100, 200, 300, 260]}
        """
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Screen description must be a mapping")
        elements = [element_from_dict(e) for e in data.get('elements') or []]
        return cls(elements, data.get('device'))

    @classmethod
    def from_file(cls, path: Union[str, os.PathLike]) -> 'SimulatedHost':
        return cls.from_yaml(Path(path).read_text(encoding='utf-8'))

    def _record(self, *action) -> bool:
        self.actions.append(action)
        return True

    def _find(self, predicate) -> Optional[ElementInfo]:
        for element in self.elements:
            if predicate(element):
                return element
        return None

    def tap(self, x, y):
        return self._record('tap', x, y)

    def swipe(self, x1, y1, x2, y2, duration):
        return self._record('swipe', x1, y1, x2, y2, duration)

    def input_text(self, text):
        if self.focused is not None:
            if not self.focused.editable:
                return False
            self.focused.text = text
        return self._record('input_text', text)

    def find_by_text(self, text):
        wanted = text.casefold()
        return self._find(lambda e: e.text.casefold() == wanted)

    def find_by_resource_id(self, resource_id):
        return self._find(lambda e: e.resource_id == resource_id)

    def find_by_content_desc(self, description):
        wanted = description.casefold()
        return self._find(lambda e: e.content_description.casefold() == wanted)

    def click(self, element):
        if not element.clickable:
            return False
        if element.editable:
            self.focused = element
        return self._record('click', element)

    def long_click(self, element):
        if not element.long_clickable:
            return False
        return self._record('long_click', element)

    def scroll(self, element, forward):
        if not element.scrollable:
            return False
        return self._record('scroll', element, forward)

    def perform_global_action(self, action):
        if action not in GLOBAL_ACTIONS:
            return False
        return self._record(action)

    def device_info(self):
        return dict(self.device)
