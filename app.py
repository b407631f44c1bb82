import streamlit as st
import time
import concurrent.futures
import dataclasses

import messages
import render
import worksheet
from config import MAX_SIMILAR_PROBLEMS, SUPPORTED_LANGUAGES, configure_logging, load_settings
from models import PracticeProblem, Solution
from session import SessionController, apply_finished, execute
from vlm_engine import VLMEngine

# Page Config
st.set_page_config(page_title="Math Tutor", page_icon="📐", layout="wide")

settings = load_settings()
logger = configure_logging(settings)

POLL_INTERVAL = 0.5


@st.cache_resource
def get_executor():
    """Worker pool shared by all sessions; workers only call the model."""
    return concurrent.futures.ThreadPoolExecutor(max_workers=4, thread_name_prefix="tutor")


@st.cache_resource
def get_engine(api_key, language):
    return VLMEngine.from_settings(dataclasses.replace(settings, language=language), api_key=api_key)


def get_controller(language):
    if "controller" not in st.session_state:
        st.session_state.controller = SessionController(language=language)
        st.session_state.jobs = []
    controller = st.session_state.controller
    controller.language = language
    return controller


def submit(ticket, engine):
    """Runs a ticket in the background; the result is applied on a later rerun."""
    if ticket is None:
        return
    future = get_executor().submit(execute, engine, ticket)
    st.session_state.jobs.append((ticket, future))


def drain_jobs(controller):
    """Applies every finished job to the session, in this (script) thread only."""
    st.session_state.jobs = apply_finished(controller, st.session_state.jobs)


@st.cache_data(show_spinner=False)
def build_worksheet(items, title, source_text, labels):
    problems = [
        PracticeProblem(statement=statement, solution=Solution(steps=steps) if steps else None)
        for statement, steps in items
    ]
    return worksheet.generate_worksheet(problems, title=title, source_text=source_text, labels=dict(labels))


# --- Sidebar Configuration ---

language = st.sidebar.selectbox(
    "Language / Ngôn ngữ",
    SUPPORTED_LANGUAGES,
    index=SUPPORTED_LANGUAGES.index(settings.language),
    format_func=lambda code: {"vi": "Tiếng Việt", "en": "English"}[code],
)


def t(key, **kwargs):
    return messages.text(language, key, **kwargs)


st.sidebar.title(t("sidebar_title"))
gemini_api_key = st.sidebar.text_input(t("api_key_label"), type="password", value=settings.api_key)

if not gemini_api_key:
    st.sidebar.warning(t("api_key_missing"))
    engine = None
else:
    engine = get_engine(gemini_api_key, language)
st.sidebar.caption(f"Model: {settings.model_name}")

controller = get_controller(language)
drain_jobs(controller)
state = controller.state

# --- Main Page UI ---

st.title(f"📐 {t('page_title')}")
st.markdown(t("subtitle"))

if state.error:
    st.error(f"**{t('error_prefix')}** {state.error}")

left, right = st.columns(2, gap="large")

# Panel 1: Upload
with left.container(border=True):
    st.subheader(t("panel_upload"))
    uploaded_file = st.file_uploader(t("upload_label"), type=["png", "jpg", "jpeg", "webp"], help=t("upload_help"))
    if uploaded_file is not None and uploaded_file.file_id != state.file_id:
        if not engine:
            st.error(t("api_key_missing"))
        else:
            ticket = controller.upload_image(uploaded_file.getvalue(), uploaded_file.name, uploaded_file.file_id)
            submit(ticket, engine)
            st.rerun()
    if state.preview:
        st.image(state.preview, caption=t("preview_caption"))

# Panel 2: Original problem and solution
with right.container(border=True):
    st.subheader(t("panel_content"))
    if state.solving_original:
        st.info(t("solving_original"), icon="⏳")
    elif state.solution:
        st.markdown(f"**{t('extracted_heading')}**")
        with st.container(border=True):
            render.render_math(state.problem_text)

        toggle_label = t("hide_solution") if state.show_original else t("show_solution")
        if st.button(toggle_label, key="toggle_original"):
            controller.toggle_original()
            st.rerun()

        if state.show_original:
            with st.container(border=True):
                render.render_solution(state.solution, t("steps_heading"), t("figure_heading"))
    else:
        st.caption(t("content_placeholder"))

left, right = st.columns(2, gap="large")

# Panel 3: Generate similar problems
with left.container(border=True):
    st.subheader(t("panel_generate"))
    if state.generating_similar:
        st.info(t("generating", count=state.requested_count), icon="⏳")
    elif state.problems:
        info_col, action_col = st.columns([3, 1])
        info_col.markdown(t("generated_count", count=len(state.problems)))
        if action_col.button(t("regenerate"), key="clear_similar"):
            controller.clear_similar()
            st.rerun()

        for index, problem in enumerate(state.problems):
            with st.container(border=True):
                st.markdown(f"`{t('problem_label', number=index + 1)}`")
                render.render_math(problem.statement)

        labels = (
            ("original", t("worksheet_original")),
            ("workspace", t("worksheet_workspace")),
            ("answer_key", t("worksheet_answer_key")),
            ("unsolved", t("worksheet_unsolved")),
            ("problem", t("problem_label", number="{number}")),
        )
        items = tuple((p.statement, p.solution.steps if p.solution else None) for p in state.problems)
        try:
            pdf_bytes = build_worksheet(items, t("worksheet_title"), state.problem_text, labels)
        except Exception:
            logger.exception("Worksheet generation failed")
        else:
            st.download_button(
                label=t("download_worksheet"),
                data=pdf_bytes,
                file_name="worksheet.pdf",
                mime="application/pdf",
            )
    elif state.solution:
        st.markdown(t("detected_count", count=state.problem_count))
        count = st.number_input(
            t("count_label"),
            min_value=1,
            max_value=MAX_SIMILAR_PROBLEMS,
            value=state.requested_count,
            step=1,
            key=f"count_{state.epoch}",
        )
        controller.set_requested_count(count)
        if st.button(t("generate_button"), type="primary", disabled=engine is None):
            submit(controller.request_similar(), engine)
            st.rerun()
    else:
        st.caption(t("solve_original_first"))

# Panel 4: Solutions for similar problems
with right.container(border=True):
    st.subheader(t("panel_solutions"))
    if state.problems:
        st.caption(t("choose_problem"))
        for index, problem in enumerate(state.problems):
            with st.container(border=True):
                title_col, button_col = st.columns([3, 1])
                title_col.markdown(f"**{t('problem_heading', number=index + 1)}**")

                if problem.solved:
                    label = t("hide_short") if problem.expanded else t("show_short")
                    if button_col.button(label, key=f"toggle_{state.batch}_{index}"):
                        controller.toggle_solution(index)
                        st.rerun()
                else:
                    is_solving = state.solving_index == index
                    clicked = button_col.button(
                        t("solving_button") if is_solving else t("solve_button"),
                        key=f"solve_{state.batch}_{index}",
                        disabled=state.solving_index is not None or engine is None,
                        type="primary",
                    )
                    if clicked:
                        submit(controller.solve_similar(index), engine)
                        st.rerun()

                if problem.solved and problem.expanded:
                    render.render_solution(problem.solution, figure_heading=t("figure_heading"))
    else:
        st.caption(t("solutions_placeholder"))

# Poll until every background call has been applied
if st.session_state.jobs:
    time.sleep(POLL_INTERVAL)
    st.rerun()
