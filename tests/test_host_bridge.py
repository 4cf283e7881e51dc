import pytest

from autoscript.autoscript_runtime import ScriptRunner
from autoscript.autoscript_host import (
    AutomationHost, AutomationBridge, SimulatedHost, ElementInfo, Bounds, element_from_dict,
)

SCREEN = """
device:
  model: Pixel 7
  screenWidth: 1080
  screenHeight: 2400
elements:
  - text: Login
    resourceId: com.app:id/login
    contentDescription: Login button
    className: android.widget.Button
    clickable: true
    bounds: [100, 200, 300, 260]
  - text: ""
    resourceId: com.app:id/user
    className: android.widget.EditText
    clickable: true
    editable: true
  - resourceId: com.app:id/list
    scrollable: true
    long_clickable: true
    visible: false
    bounds: {left: 0, top: 300, right: 1080, bottom: 2000}
"""


@pytest.fixture
def host():
    return SimulatedHost.from_yaml(SCREEN)


@pytest.fixture
def runner(host):
    return ScriptRunner(host_object=host)


def printed(res):
    return [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]


def assert_ok(res, expected=None):
    assert res.success, res.format_error()
    if expected is not None:
        assert printed(res) == expected


def assert_error(res, contains):
    assert not res.success
    assert contains in res.format_error(), res.errors


def test_screen_description_loading(host):
    assert len(host.elements) == 3
    login = host.elements[0]
    assert login.resource_id == "com.app:id/login"
    assert login.bounds == Bounds(100, 200, 300, 260)
    assert login.bounds.width == 200 and login.bounds.height == 60
    assert login.bounds.center() == (200, 230)
    assert host.elements[2].bounds.bottom == 2000
    assert host.device_info()["model"] == "Pixel 7"
    assert host.device_info()["sdk"] == 34


def test_element_from_dict_rejects_unknown_keys():
    with pytest.raises(ValueError, match="Unknown element attribute"):
        element_from_dict({"colour": "red"})


def test_coordinate_actions_are_recorded(runner, host):
    res = runner.execute("Print(Tap(10, 20)); Swipe(1, 2, 3, 4); Swipe(1, 2, 3, 4, 50);")
    assert_ok(res, ["true"])
    assert host.actions == [
        ('tap', 10, 20),
        ('swipe', 1, 2, 3, 4, 300),
        ('swipe', 1, 2, 3, 4, 50),
    ]


def test_argument_validation(runner):
    assert_error(runner.execute('Tap("10", 20);'), "x must be an integer")
    assert_error(runner.execute("Tap(1);"), "Tap() requires 2 arguments, got 1")
    assert_error(runner.execute("Swipe(1, 2, 3);"), "Swipe() requires 4 to 5 arguments, got 3")
    assert_error(runner.execute("InputText(5);"), "text must be a string")


def test_find_returns_element_objects(runner):
    res = runner.execute("""
        $btn = FindByText("login");
        Print($btn.text, $btn.resourceId, $btn.className, $btn.clickable, $btn.editable);
        Print(TypeOf($btn.__nodeId), FindByText("nothing") == null);
        $byId = FindByResourceId("com.app:id/user");
        $byDesc = FindByContentDesc("LOGIN BUTTON");
        Print($byId.editable, $byDesc.contentDescription);
    """)
    assert_ok(res, [
        "Login com.app:id/login android.widget.Button true false",
        "integer true",
        "true Login button",
    ])


def test_click_input_and_element_queries(runner, host):
    res = runner.execute("""
        $field = FindByResourceId("com.app:id/user");
        Click($field);
        InputText("alice");
        Print(GetText($field), IsVisible($field));
        $list = FindByResourceId("com.app:id/list");
        Print(Scroll($list, true), LongClick($list), IsVisible($list));
        $b = GetBounds($list);
        Print($b.left, $b.top, $b.width, $b.height);
        Print(Click(FindByText("Login")), LongClick(FindByText("Login")));
    """)
    assert_ok(res, ["alice true", "true true false", "0 300 1080 1700", "true false"])
    field = host.elements[1]
    assert field.text == "alice"
    assert ('input_text', 'alice') in host.actions
    assert ('scroll', host.elements[2], True) in host.actions


def test_global_actions_and_device_info(runner, host):
    res = runner.execute("""
        PressBack(); PressHome(); PressRecents(); OpenNotifications(); OpenQuickSettings();
        $info = DeviceInfo();
        Print($info.model, $info.screenWidth);
    """)
    assert_ok(res, ["Pixel 7 1080"])
    assert host.actions == [('back',), ('home',), ('recents',), ('notifications',), ('quick_settings',)]


@pytest.mark.parametrize("src, message", [
    ("Click(5);", "Expected element object"),
    ('Click(ParseJson("{}"));', "Invalid element object"),
    ('Click(ParseJson("{\\"__nodeId\\": \\"1\\"}"));', "Invalid element object"),
    ('Click(ParseJson("{\\"__nodeId\\": 999}"));', "Element no longer valid"),
    ('Scroll(FindByText("Login"), 1);', "forward must be a boolean"),
])
def test_element_handle_validation(runner, src, message):
    assert_error(runner.execute(src), message)


def test_released_elements_are_no_longer_valid(runner):
    res = runner.execute('$btn = FindByText("Login");')
    assert_ok(res)
    runner.bridge.release_elements()
    assert_error(runner.execute("Click($btn);"), "Element no longer valid")


def test_host_exceptions_are_wrapped():
    class FlakyHost(SimulatedHost):
        def tap(self, x, y):
            raise ConnectionError("device offline")

    runner = ScriptRunner(host_object=FlakyHost())
    assert_error(runner.execute("Tap(1, 2);"), "Tap failed: device offline")


def test_explicit_natives_shadow_host_natives(host):
    runner = ScriptRunner(host_object=host, natives={"Tap": lambda args: "stubbed"})
    res = runner.execute("Print(Tap(1, 2));")
    assert_ok(res, ["stubbed"])
    assert host.actions == []


def test_runner_rejects_non_host_objects():
    with pytest.raises(TypeError, match="AutomationHost"):
        ScriptRunner(host_object=object())


def test_custom_host_subclass():
    class MinimalHost(AutomationHost):
        def __init__(self):
            self.taps = []

        def tap(self, x, y):
            self.taps.append((x, y))
            return True

        def swipe(self, x1, y1, x2, y2, duration): return False
        def input_text(self, text): return False
        def find_by_text(self, text): return ElementInfo(text=text, clickable=True)
        def find_by_resource_id(self, resource_id): return None
        def find_by_content_desc(self, description): return None
        def click(self, element): return element.clickable
        def long_click(self, element): return False
        def scroll(self, element, forward): return False
        def perform_global_action(self, action): return action == 'home'
        def device_info(self): return {"model": "mini"}

    host = MinimalHost()
    runner = ScriptRunner(host_object=host)
    res = runner.execute('Tap(3, 4); Print(Click(FindByText("Go")), PressHome(), PressBack());')
    assert_ok(res, ["true true false"])
    assert host.taps == [(3, 4)]


def test_bridge_natives_cover_the_host_surface(host):
    names = set(AutomationBridge(host).natives())
    assert names == {
        "Tap", "Swipe", "InputText", "FindByText", "FindByResourceId", "FindByContentDesc",
        "Click", "LongClick", "Scroll", "PressBack", "PressHome", "PressRecents",
        "OpenNotifications", "OpenQuickSettings", "GetText", "GetBounds", "IsVisible",
        "DeviceInfo",
    }
