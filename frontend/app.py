# frontend/app.py
# Run with: streamlit run frontend/app.py  (the API must be up: brd-studio-api)
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

from frontend import files as _files
from frontend.api_client import BRDApiClient, API_BASE
from frontend.controller import PipelineController, WizardStep
from frontend.sidebar import render_sidebar

TEXT = {
    "en": {
        "title": "BRD Studio",
        "step1": "1. Upload recordings",
        "media": "Audio or video files",
        "transcribe": "Transcribe",
        "transcribing": "Transcribing...",
        "transcription": "Transcription",
        "proceed": "Continue to BRD setup",
        "step2": "2. BRD setup",
        "notes": "Additional notes",
        "samples": "Sample documents (PDF, DOCX, TXT)",
        "generate": "Generate BRD",
        "generating": "Generating BRD...",
        "back_transcribe": "Back to transcription",
        "step3": "3. Business Requirements Document",
        "preview": "Preview",
        "edit": "Edit",
        "save": "Save changes",
        "refine": "Describe a change (e.g. 'add a risks section')",
        "apply": "Refine",
        "refining": "Refining...",
        "final": "Upload the approved final document",
        "upload": "Upload final",
        "final_link": "Final document",
        "download_md": "Download BRD (.md)",
        "download_txt": "Download transcription",
        "back_setup": "Back to setup",
        "chat": "Chat about this BRD",
        "ask": "Ask a question about the BRD",
        "start_over": "Start over",
    },
    "ar": {
        "title": "استوديو وثائق المتطلبات",
        "step1": "١. رفع التسجيلات",
        "media": "ملفات صوت أو فيديو",
        "transcribe": "نسخ",
        "transcribing": "جارٍ النسخ...",
        "transcription": "النص المنسوخ",
        "proceed": "متابعة إلى إعداد الوثيقة",
        "step2": "٢. إعداد الوثيقة",
        "notes": "ملاحظات إضافية",
        "samples": "وثائق نموذجية (PDF، DOCX، TXT)",
        "generate": "إنشاء الوثيقة",
        "generating": "جارٍ إنشاء الوثيقة...",
        "back_transcribe": "العودة إلى النسخ",
        "step3": "٣. وثيقة متطلبات العمل",
        "preview": "معاينة",
        "edit": "تحرير",
        "save": "حفظ التغييرات",
        "refine": "صف التعديل المطلوب",
        "apply": "تحسين",
        "refining": "جارٍ التحسين...",
        "final": "رفع الوثيقة النهائية المعتمدة",
        "upload": "رفع",
        "final_link": "الوثيقة النهائية",
        "download_md": "تنزيل الوثيقة (.md)",
        "download_txt": "تنزيل النص المنسوخ",
        "back_setup": "العودة إلى الإعداد",
        "chat": "محادثة حول الوثيقة",
        "ask": "اطرح سؤالاً حول الوثيقة",
        "start_over": "البدء من جديد",
    },
}


def initialize_session():
    if "controller" not in st.session_state:
        ctrl = PipelineController(BRDApiClient(API_BASE))
        ctrl.history.refresh()
        st.session_state.controller = ctrl
    st.session_state.setdefault("chat_panel", None)
    st.session_state.setdefault("uploader_key", 0)
    return st.session_state.controller


def rtl(ctrl):
    if ctrl.state.is_rtl:
        st.markdown(
            "<style>.main .block-container { direction: rtl; text-align: right; }</style>",
            unsafe_allow_html=True,
        )


def show_error(ctrl):
    if ctrl.state.error:
        st.error(ctrl.state.error)


def language_toggle(ctrl):
    choice = st.radio("Language / اللغة", ["en", "ar"], horizontal=True,
                      index=0 if ctrl.state.language == "en" else 1,
                      format_func=lambda x: "English" if x == "en" else "العربية")
    if choice != ctrl.state.language:
        ctrl.set_language(choice)
        st.rerun()


def transcribe_step(ctrl, t):
    st.subheader(t["step1"])
    uploads = st.file_uploader(t["media"], accept_multiple_files=True,
                               type=None, key=f"media_{st.session_state.uploader_key}")
    if uploads:
        ctrl.add_files(_files.from_upload(u) for u in uploads)
        st.session_state.uploader_key += 1
        st.rerun()

    for i, f in enumerate(ctrl.state.files):
        cols = st.columns([0.85, 0.15])
        cols[0].write(f"🎞️ {f.name}")
        if cols[1].button("🗑️", key=f"rm_media_{i}"):
            ctrl.remove_file(i)
            st.rerun()

    if st.button(t["transcribe"], disabled=not ctrl.state.files or ctrl.state.is_processing):
        with st.spinner(t["transcribing"]):
            ctrl.transcribe()
        st.rerun()

    show_error(ctrl)
    if ctrl.state.transcription:
        st.markdown(f"#### {t['transcription']}")
        st.markdown(ctrl.state.transcription)
        name, data = ctrl.export_transcription()
        st.download_button(t["download_txt"], data, file_name=name, mime="text/plain")
        if st.button(t["proceed"], type="primary"):
            ctrl.proceed_to_setup()
            st.rerun()


def setup_step(ctrl, t):
    st.subheader(t["step2"])
    notes = st.text_area(t["notes"], value=ctrl.state.extra_notes)
    ctrl.set_notes(notes)

    samples = st.file_uploader(t["samples"], accept_multiple_files=True,
                               key=f"samples_{st.session_state.uploader_key}")
    if samples:
        ctrl.add_samples(_files.from_upload(u, cls=_files.SampleFile) for u in samples)
        st.session_state.uploader_key += 1
        st.rerun()

    for i, f in enumerate(ctrl.state.sample_files):
        cols = st.columns([0.85, 0.15])
        cols[0].write(f"📄 {f.name}")
        if cols[1].button("🗑️", key=f"rm_sample_{i}"):
            ctrl.remove_sample(i)
            st.rerun()

    show_error(ctrl)
    cols = st.columns(2)
    if cols[0].button(t["back_transcribe"]):
        ctrl.back_to_transcribe()
        st.rerun()
    if cols[1].button(t["generate"], type="primary", disabled=ctrl.state.is_processing):
        with st.spinner(t["generating"]):
            ok = ctrl.generate()
        if ok:
            st.session_state.chat_panel = None
        st.rerun()


def result_step(ctrl, t):
    st.subheader(ctrl.state.title or t["step3"])
    show_error(ctrl)

    preview, edit = st.tabs([t["preview"], t["edit"]])
    with preview:
        st.markdown(ctrl.state.brd_content or "")
    with edit:
        edited = st.text_area(t["edit"], value=ctrl.state.brd_content or "", height=500,
                              label_visibility="collapsed")
        if st.button(t["save"]):
            ctrl.save_edit(edited)
            st.rerun()

    with st.form("refine_form", clear_on_submit=True):
        command = st.text_input(t["refine"])
        if st.form_submit_button(t["apply"]):
            with st.spinner(t["refining"]):
                ctrl.refine(command)
            st.rerun()

    md_name, md_data = ctrl.export_markdown()
    tx_name, tx_data = ctrl.export_transcription()
    cols = st.columns(2)
    cols[0].download_button(t["download_md"], md_data, file_name=md_name, mime="text/markdown")
    cols[1].download_button(t["download_txt"], tx_data, file_name=tx_name, mime="text/plain")

    final = st.file_uploader(t["final"], key=f"final_{st.session_state.uploader_key}")
    if final and st.button(t["upload"]):
        ctrl.upload_final(final.name, final.getvalue(), final.type)
        st.session_state.uploader_key += 1
        st.rerun()
    url = ctrl.final_doc_url()
    if url:
        st.markdown(f"[{t['final_link']}]({url})")

    cols = st.columns(3)
    if cols[0].button(t["back_setup"]):
        ctrl.back_to_setup()
        st.rerun()
    if cols[1].button(t["back_transcribe"]):
        ctrl.back_to_transcribe()
        st.rerun()
    if cols[2].button(t["chat"]):
        ctrl.toggle_chat()
        st.rerun()

    if ctrl.state.show_chat and ctrl.state.brd_id:
        chat_section(ctrl, t)


def chat_section(ctrl, t):
    panel = st.session_state.chat_panel
    if panel is None or panel.brd_id != ctrl.state.brd_id:
        panel = ctrl.open_chat()
        st.session_state.chat_panel = panel
    # the panel grounds on the BRD as it is now
    panel.brd_content = ctrl.state.brd_content or ""

    for m in panel.messages:
        with st.chat_message("assistant" if m.role == "model" else "user"):
            st.markdown(m.content)

    prompt = st.chat_input(t["ask"])
    if prompt:
        with st.spinner("..."):
            panel.send(prompt)
        st.rerun()


def main():
    st.set_page_config(page_title="BRD Studio", page_icon="📝", layout="wide")
    ctrl = initialize_session()
    t = TEXT[ctrl.state.language]

    rtl(ctrl)
    render_sidebar(ctrl)
    st.title(t["title"])
    language_toggle(ctrl)

    step = ctrl.state.step
    if step == WizardStep.TRANSCRIBE:
        transcribe_step(ctrl, t)
    elif step == WizardStep.BRD_SETUP:
        setup_step(ctrl, t)
    else:
        result_step(ctrl, t)

    st.markdown("---")
    if st.button(t["start_over"]):
        ctrl.reset()
        st.session_state.chat_panel = None
        st.rerun()


main()
