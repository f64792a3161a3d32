# ui/grid_mode/filters_panel.py
from typing import Dict, List, Optional

import streamlit as st

from core.grid.filters import DISCARDED, FORCED, NEUTRAL, TRISTATE, FilterEngine

_STATE_ICONS = {NEUTRAL: "◻️", FORCED: "✅", DISCARDED: "🚫"}
_STATE_HELP = {
    NEUTRAL: "Not filtering",
    FORCED: "Only matching",
    DISCARDED: "Hide matching",
}
_MASTERY_LABELS = {"0": "Checked, no circles", "1": "1 circle", "2": "2 circles", "3": "3 circles"}


def _widget_key(prefix: str, name: str) -> str:
    return f"{prefix}_filter_{name}"


def _on_multiselect(engine: FilterEngine, name: str, key: str) -> None:
    engine.set_values(name, st.session_state.get(key) or [])


def _on_reset(engine: FilterEngine, prefix: str) -> None:
    engine.reset()
    for name in engine.dimensions:
        st.session_state.pop(_widget_key(prefix, name), None)


def render_filters(
    engine: FilterEngine,
    *,
    prefix: str = "grid",
    dynamic_options: Optional[Dict[str, List[str]]] = None,
) -> None:
    """Tristate toggles and multi-selects for every dimension of `engine`.

    `dynamic_options` supplies choices for dimensions without a fixed option
    list (subclass comes from the catalog).
    """
    dynamic_options = dynamic_options or {}
    active = engine.active_dimensions()
    title = f"🔎 Filters ({len(active)} active)" if active else "🔎 Filters"

    with st.expander(title, expanded=bool(active)):
        tristate = [d for d in engine.dimensions.values() if d.mode == TRISTATE]
        if tristate:
            cols = st.columns(len(tristate))
            for col, dim in zip(cols, tristate):
                state = engine.filters[dim.name].state
                with col:
                    st.button(
                        f"{_STATE_ICONS[state]} {dim.label or dim.name}",
                        key=_widget_key(prefix, dim.name),
                        help=_STATE_HELP[state],
                        on_click=engine.toggle,
                        args=(dim.name,),
                        use_container_width=True,
                    )

        for dim in engine.dimensions.values():
            if dim.mode == TRISTATE:
                continue
            options = list(dim.options) if dim.options is not None else list(dynamic_options.get(dim.name, []))
            key = _widget_key(prefix, dim.name)
            selected = [v for v in engine.filters[dim.name].values if v in options]

            # Re-seed the widget if it was pruned or went out of sync with stored filters
            if key not in st.session_state or st.session_state[key] != selected:
                st.session_state[key] = selected

            st.multiselect(
                dim.label or dim.name,
                options=options,
                key=key,
                format_func=(lambda v: _MASTERY_LABELS.get(v, v)) if dim.name == "mastery" else str,
                on_change=_on_multiselect,
                args=(engine, dim.name, key),
            )

        if active:
            st.button("Clear filters", key=f"{prefix}_filters_reset", on_click=_on_reset, args=(engine, prefix))
