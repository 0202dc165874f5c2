import sys
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

# Make `src/` importable when the package is not installed and Streamlit
# changes the working directory.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from careerrag.config import get_settings
from careerrag.errors import CareerRAGError, MalformedAnalysisOutputError
from careerrag.loaders import RESUME_SUFFIXES, extract_resume_text
from careerrag.logging_config import configure_logging
from careerrag.schemas import AnalysisResponse
from careerrag.services import build_analyzer, build_ingestion_pipeline
from careerrag.vectorstore import make_vector_index


@st.cache_resource
def _init_analyzer():
    return build_analyzer(get_settings())


@st.cache_resource
def _init_index():
    return make_vector_index(get_settings().vector_index)


def _render_sidebar() -> None:
    settings = get_settings()
    st.sidebar.header("Knowledge base")
    st.sidebar.caption(f"Index: `{settings.vector_index.index_name}` ({settings.vector_index.provider})")

    try:
        stats = _init_index().stats()
    except CareerRAGError as e:
        st.sidebar.warning(f"Index unavailable: {e.message}")
    else:
        st.sidebar.metric("Vectors", stats.total_vectors)
        if stats.total_vectors == 0:
            st.sidebar.info("Index is empty. Run ingestion to enable retrieval.")

    st.sidebar.divider()
    if st.sidebar.button("Ingest knowledge base"):
        with st.spinner(f"Ingesting {settings.ingestion.corpus_dir}..."):
            try:
                report = build_ingestion_pipeline(settings).run()
            except CareerRAGError as e:
                st.sidebar.error(f"Ingestion failed [{e.kind}]: {e.message}")
                return
        st.sidebar.success(
            f"Upserted {report.vectors_upserted} vectors from {report.documents} document(s)."
        )


def _render_result(result: AnalysisResponse) -> None:
    a, meta = result.analysis, result.metadata
    col_score, col_role, col_sources = st.columns(3)
    col_score.metric("Match score", f"{a.match_score:.0f}/100")
    col_role.metric("Detected role", meta.job_role)
    col_sources.metric("Knowledge sources", meta.context_sources)
    st.write(f"**Verdict**: {a.verdict}")

    st.markdown("**Strengths**")
    for s in a.strengths:
        st.write(f"- {s}")
    st.markdown("**Weaknesses**")
    for w in a.weaknesses:
        st.write(f"- {w}")
    st.markdown("**Missing keywords**")
    st.write(", ".join(a.missing_keywords) or "None")
    if not meta.rag_enabled:
        st.caption("No knowledge-base context was retrieved for this analysis.")


def _analyze_tab() -> None:
    st.subheader("Resume analysis")
    st.caption("Paste or upload a resume, add the job description, and get a scored fit analysis.")

    uploaded = st.file_uploader("Resume file", type=[s.lstrip(".") for s in RESUME_SUFFIXES])
    resume_text = st.text_area("...or paste resume text", height=200)
    job_desc = st.text_area("Job description", height=180, placeholder="Paste the job description here...")

    if st.button("Analyze", disabled=not (uploaded or resume_text.strip())):
        try:
            if uploaded is not None:
                resume_text = extract_resume_text(uploaded.name, uploaded.getvalue())
            with st.spinner("Retrieving career knowledge and analyzing..."):
                result = _init_analyzer().analyze(resume_text, job_desc)
        except MalformedAnalysisOutputError as e:
            st.error(e.message)
            with st.expander("Raw model output"):
                st.code(e.raw_text)
            return
        except CareerRAGError as e:
            st.error(f"[{e.kind}] {e.message}")
            return
        _render_result(result)


def main() -> None:
    load_dotenv()
    configure_logging(get_settings().log_level)

    st.set_page_config(page_title="CareerRAG Resume Analyzer", layout="wide")
    st.title("Resume Analyzer (RAG + LLM)")

    _render_sidebar()
    _analyze_tab()


if __name__ == "__main__":
    main()
