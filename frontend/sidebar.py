# frontend/sidebar.py
import streamlit as st

from frontend.controller import PipelineController

LABELS = {
    "en": {"title": "History", "new": "➕ New BRD", "empty": "No BRDs yet."},
    "ar": {"title": "السجل", "new": "➕ وثيقة جديدة", "empty": "لا توجد وثائق بعد."},
}


def render_sidebar(ctrl: PipelineController):
    labels = LABELS[ctrl.state.language]
    st.sidebar.title(labels["title"])

    if st.sidebar.button(labels["new"], use_container_width=True):
        ctrl.reset()
        st.session_state.pop("chat_panel", None)
        st.rerun()

    history = ctrl.history
    if history.error:
        st.sidebar.error(history.error)
    if not history.items:
        st.sidebar.info(labels["empty"])
        return

    for item in history.items:
        label = item.title or "Untitled BRD"
        if item.final_doc_path:
            label = f"{label} ✅"
        caption = f"{(item.created_at or '')[:16].replace('T', ' ')} · {item.language.upper()}"
        active = item.id == ctrl.state.brd_id
        if st.sidebar.button(label, key=f"open_{item.id}", use_container_width=True,
                             type="primary" if active else "secondary"):
            ctrl.resume(item)
            st.session_state.pop("chat_panel", None)
            st.rerun()
        st.sidebar.caption(caption)
