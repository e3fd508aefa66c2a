"""
Runtime helpers imported from "vue" by generated code.
"""

from enum import Enum
from typing import List, Set


class RuntimeHelper(Enum):
    """Runtime symbols, in the order they appear in the generated import."""

    FRAGMENT = "Fragment"
    TELEPORT = "Teleport"
    SUSPENSE = "Suspense"
    KEEP_ALIVE = "KeepAlive"
    TRANSITION = "Transition"
    TRANSITION_GROUP = "TransitionGroup"
    RESOLVE_COMPONENT = "resolveComponent"
    RESOLVE_DYNAMIC_COMPONENT = "resolveDynamicComponent"
    RESOLVE_DIRECTIVE = "resolveDirective"
    CREATE_VNODE = "createVNode"
    CREATE_ELEMENT_VNODE = "createElementVNode"
    CREATE_COMMENT = "createCommentVNode"
    CREATE_TEXT = "createTextVNode"
    CREATE_SLOTS = "createSlots"
    RENDER_LIST = "renderList"
    RENDER_SLOT = "renderSlot"
    WITH_CTX = "withCtx"
    WITH_DIRECTIVES = "withDirectives"
    WITH_MODIFIERS = "withModifiers"
    WITH_KEYS = "withKeys"
    TO_DISPLAY_STRING = "toDisplayString"
    TO_HANDLERS = "toHandlers"
    TO_HANDLER_KEY = "toHandlerKey"
    NORMALIZE_CLASS = "normalizeClass"
    NORMALIZE_STYLE = "normalizeStyle"
    MERGE_PROPS = "mergeProps"
    V_SHOW = "vShow"
    V_MODEL_TEXT = "vModelText"
    V_MODEL_CHECKBOX = "vModelCheckbox"
    V_MODEL_RADIO = "vModelRadio"
    V_MODEL_SELECT = "vModelSelect"
    V_MODEL_DYNAMIC = "vModelDynamic"
    UNREF = "unref"
    IS_REF = "isRef"
    USE_CSS_VARS = "useCssVars"
    MERGE_DEFAULTS = "mergeDefaults"
    MERGE_MODELS = "mergeModels"
    USE_MODEL = "useModel"
    USE_SLOTS = "useSlots"
    CREATE_PROPS_REST_PROXY = "createPropsRestProxy"

    @property
    def alias(self) -> str:
        return f"_{self.value}"


BUILTIN_COMPONENTS = {
    "Teleport": RuntimeHelper.TELEPORT,
    "Suspense": RuntimeHelper.SUSPENSE,
    "KeepAlive": RuntimeHelper.KEEP_ALIVE,
    "Transition": RuntimeHelper.TRANSITION,
    "TransitionGroup": RuntimeHelper.TRANSITION_GROUP,
}


class HelperRegistry:
    """Records which helpers a compile call used."""

    def __init__(self) -> None:
        self._used: Set[RuntimeHelper] = set()

    def use(self, helper: RuntimeHelper) -> str:
        self._used.add(helper)
        return helper.alias

    def __contains__(self, helper: RuntimeHelper) -> bool:
        return helper in self._used

    def __len__(self) -> int:
        return len(self._used)

    def used(self) -> List[RuntimeHelper]:
        return [helper for helper in RuntimeHelper if helper in self._used]

    def import_statement(self) -> str:
        if not self._used:
            return ""
        names = ", ".join(f"{helper.value} as {helper.alias}" for helper in self.used())
        return f'import {{ {names} }} from "vue"'
