"""Tests for ResumeAnalyzer and model-output parsing."""

from unittest.mock import MagicMock

import pytest

from conftest import FakeEmbedder, FakeIndex, make_match
from careerrag.analysis import ResumeAnalyzer, parse_analysis, strip_code_fences
from careerrag.errors import GenerationError, MalformedAnalysisOutputError, MissingInputError
from careerrag.prompts import build_analysis_prompt
from careerrag.retrieval import Retriever
from careerrag.schemas import RetrievalContext

VALID_JSON = (
    '{"match_score": 82, "strengths": ["Python", "APIs"], "weaknesses": ["No cloud"], '
    '"missing_keywords": ["AWS"], "verdict": "Strong fit"}'
)


@pytest.fixture
def knowledge_index() -> FakeIndex:
    return FakeIndex(
        {
            "resume_best_practices": [make_match("chunk_0", 0.9, "resume_best_practices", "Use action verbs.")],
            "technical_skills_keywords": [make_match("chunk_5", 0.8, "technical_skills_keywords", "List Python.")],
            "interview_career_advice": [make_match("chunk_9", 0.7, "interview_career_advice", "Use STAR.")],
        }
    )


@pytest.fixture
def analyzer_factory(retrieval_settings, generation_settings):
    def _make(llm, index=None, embedder=None):
        if index is None:
            retriever = Retriever(None, None, retrieval_settings)
        else:
            retriever = Retriever(embedder or FakeEmbedder(), index, retrieval_settings)
        return ResumeAnalyzer(retriever, llm, generation_settings)

    return _make


class TestParseAnalysis:
    """Test suite for parse_analysis."""

    def test_fenced_json_is_parsed(self) -> None:
        result = parse_analysis(f"```json\n{VALID_JSON}\n```")

        assert result.match_score == 82
        assert isinstance(result.match_score, int)
        assert result.missing_keywords == ["AWS"]

    def test_fractional_score_is_kept(self) -> None:
        raw = '{"match_score": 82.5, "strengths": [], "weaknesses": [], "missing_keywords": [], "verdict": "ok"}'

        assert parse_analysis(raw).match_score == 82.5

    def test_bare_fences_are_stripped(self) -> None:
        assert strip_code_fences("```\n{}\n```") == "{}"

    def test_non_json_keeps_raw_text(self) -> None:
        raw = "I think this candidate is great!"

        with pytest.raises(MalformedAnalysisOutputError) as exc_info:
            parse_analysis(raw)

        assert exc_info.value.raw_text == raw
        assert exc_info.value.details["raw_text"] == raw

    @pytest.mark.parametrize(
        "raw",
        [
            '{"match_score": 140, "strengths": [], "weaknesses": [], "missing_keywords": [], "verdict": "x"}',
            '{"match_score": -1, "strengths": [], "weaknesses": [], "missing_keywords": [], "verdict": "x"}',
            '{"match_score": 50, "strengths": [], "weaknesses": [], "verdict": "x"}',
            '{"match_score": "high", "strengths": [], "weaknesses": [], "missing_keywords": [], "verdict": "x"}',
            '{"match_score": "82", "strengths": [], "weaknesses": [], "missing_keywords": [], "verdict": "x"}',
            '{"match_score": true, "strengths": [], "weaknesses": [], "missing_keywords": [], "verdict": "x"}',
            '["not", "an", "object"]',
        ],
    )
    def test_schema_violations_are_rejected(self, raw) -> None:
        with pytest.raises(MalformedAnalysisOutputError) as exc_info:
            parse_analysis(raw)

        assert exc_info.value.raw_text == raw

    def test_boundary_scores_are_accepted(self) -> None:
        for score in (0, 100):
            raw = (
                f'{{"match_score": {score}, "strengths": [], "weaknesses": [], '
                '"missing_keywords": [], "verdict": "ok"}'
            )
            assert parse_analysis(raw).match_score == score


class TestBuildAnalysisPrompt:
    def test_only_non_empty_sections_are_included(self) -> None:
        ctx = RetrievalContext(general="Use action verbs.", career="Use STAR.")

        prompt = build_analysis_prompt("My resume", "Backend role", ctx)

        assert "RESUME BEST PRACTICES" in prompt
        assert "CAREER AND INTERVIEW ADVICE" in prompt
        assert "ROLE-SPECIFIC SKILLS" not in prompt
        assert prompt.index("RESUME:\nMy resume") < prompt.index("JOB DESCRIPTION:\nBackend role")

    def test_no_knowledge_block_without_context(self) -> None:
        prompt = build_analysis_prompt("My resume", "", RetrievalContext())

        assert "CAREER KNOWLEDGE" not in prompt
        assert '"match_score"' in prompt


class TestResumeAnalyzer:
    """Test suite for ResumeAnalyzer.analyze."""

    def test_empty_resume_fails_before_any_service_call(self, analyzer_factory, knowledge_index) -> None:
        # Arrange
        llm = MagicMock()
        embedder = FakeEmbedder()
        analyzer = analyzer_factory(llm, knowledge_index, embedder)

        # Act / Assert
        with pytest.raises(MissingInputError):
            analyzer.analyze("   \n", "Senior backend developer")
        assert embedder.calls == []
        assert knowledge_index.queries == []
        llm.generate.assert_not_called()

    def test_both_models_failing_raises_generation_error(self, analyzer_factory) -> None:
        # Arrange
        llm = MagicMock()
        llm.generate.side_effect = GenerationError("upstream 500")
        analyzer = analyzer_factory(llm)

        # Act
        with pytest.raises(GenerationError) as exc_info:
            analyzer.analyze("Python developer with 5 years", "Backend developer")

        # Assert
        assert [c.kwargs["model"] for c in llm.generate.call_args_list] == ["gpt-4o", "gpt-3.5-turbo"]
        assert exc_info.value.details["models"] == ["gpt-4o", "gpt-3.5-turbo"]

    def test_fallback_model_is_used_when_primary_fails(self, analyzer_factory) -> None:
        llm = MagicMock()
        llm.generate.side_effect = [GenerationError("rate limited"), VALID_JSON]
        analyzer = analyzer_factory(llm)

        result = analyzer.analyze("Python developer", "Backend developer")

        assert result.metadata.model == "gpt-3.5-turbo"
        assert result.analysis.match_score == 82

    def test_fenced_response_with_full_context(self, analyzer_factory, knowledge_index) -> None:
        # Arrange
        llm = MagicMock()
        llm.generate.return_value = f"```json\n{VALID_JSON}\n```"
        analyzer = analyzer_factory(llm, knowledge_index)

        # Act
        result = analyzer.analyze("Python developer with REST APIs", "Senior backend developer")

        # Assert
        assert result.analysis.match_score == 82
        assert result.metadata.rag_enabled is True
        assert result.metadata.context_sources == 3
        assert result.metadata.job_role == "software engineer"
        assert result.metadata.model == "gpt-4o"
        llm.generate.assert_called_once()
        kwargs = llm.generate.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 1500
        assert "Use action verbs." in kwargs["prompt"]
        assert "List Python." in kwargs["prompt"]

    def test_non_json_response_is_reported_with_raw_text(self, analyzer_factory) -> None:
        llm = MagicMock()
        llm.generate.return_value = "Sorry, I cannot help with that."
        analyzer = analyzer_factory(llm)

        with pytest.raises(MalformedAnalysisOutputError) as exc_info:
            analyzer.analyze("Python developer", "Backend developer")

        assert exc_info.value.raw_text == "Sorry, I cannot help with that."
        llm.generate.assert_called_once()

    def test_without_retrieval_metadata_reports_general_role(self, analyzer_factory, fake_llm) -> None:
        analyzer = analyzer_factory(fake_llm)

        result = analyzer.analyze("Generalist resume", "")

        assert result.metadata.rag_enabled is False
        assert result.metadata.context_sources == 0
        assert result.metadata.job_role == "general"
        assert "CAREER KNOWLEDGE" not in fake_llm.generate.call_args.kwargs["prompt"]

    def test_retrieval_failure_does_not_block_analysis(self, analyzer_factory, knowledge_index,
                                                       fake_llm) -> None:
        knowledge_index.failing_categories.update(
            {"resume_best_practices", "technical_skills_keywords", "interview_career_advice"}
        )
        analyzer = analyzer_factory(fake_llm, knowledge_index)

        result = analyzer.analyze("Python developer", "Backend developer")

        assert result.analysis.match_score == 75
        assert result.metadata.rag_enabled is False

    def test_response_serializes_with_camel_case_metadata(self, analyzer_factory, fake_llm) -> None:
        result = analyzer_factory(fake_llm).analyze("resume", "Data scientist")

        body = result.model_dump(mode="json", by_alias=True)

        assert set(body["metadata"]) == {"ragEnabled", "contextSources", "jobRole", "model", "timestamp"}
        assert body["metadata"]["jobRole"] == "data scientist"
        assert body["analysis"]["verdict"] == "Interview"
