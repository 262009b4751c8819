"""Unit tests for source-specific release-year extraction."""

import pytest

from yearprobe_core.schema.evidence import SourceType, current_year
from yearprobe_core.verification.year_extractor import (
    CONFIDENCE_CRITIC_DB,
    CONFIDENCE_DISCOGRAPHY,
    CONFIDENCE_GENERIC,
    CONFIDENCE_INFOBOX,
    CONFIDENCE_LEAD_PARAGRAPHS,
    CONFIDENCE_LYRICS,
    extract_year,
    plausible_years,
)


@pytest.mark.unit
class TestEncyclopedia:
    def test_infobox_released_row(self):
        html = """
        <table class="infobox">
          <tr><th>Genre</th><td>Synth-pop</td></tr>
          <tr><th>Released</th><td>16 October 1985</td></tr>
        </table>
        <p>Recorded in 1984, reissued in 1995.</p>
        """
        result = extract_year(html, SourceType.ENCYCLOPEDIA)
        assert result.year == 1985
        assert result.confidence == CONFIDENCE_INFOBOX
        assert result.snippet.startswith("Released: 16 October 1985")

    def test_lead_paragraphs_take_earliest_year(self):
        html = """
        <p>The 2010 remaster was well received.</p>
        <p>The song was first released in 1971 as a single.</p>
        """
        result = extract_year(html, SourceType.ENCYCLOPEDIA)
        assert result.year == 1971
        assert result.confidence == CONFIDENCE_LEAD_PARAGRAPHS
        assert len(result.snippet) <= 150

    def test_only_first_five_paragraphs_are_scanned(self):
        html = "".join("<p>No dates here.</p>" for _ in range(5)) + "<p>Released 1960.</p>"
        result = extract_year(html, SourceType.ENCYCLOPEDIA)
        assert result.year == 0
        assert result.confidence == 0.0


@pytest.mark.unit
class TestStructuredSources:
    def test_discography_year_link(self):
        html = '<div><a href="/search/year/1979">1979</a></div>'
        result = extract_year(html, SourceType.DISCOGRAPHY_DB)
        assert result.year == 1979
        assert result.confidence == CONFIDENCE_DISCOGRAPHY
        assert result.snippet == "Year field: 1979"

    def test_discography_time_datetime(self):
        html = '<time datetime="1982-11-30"></time>'
        result = extract_year(html, SourceType.DISCOGRAPHY_DB)
        assert result.year == 1982

    def test_critic_db_release_date(self):
        html = '<div class="release-date">Release Date<span>June 4, 1984</span></div>'
        result = extract_year(html, SourceType.CRITIC_DB)
        assert result.year == 1984
        assert result.confidence == CONFIDENCE_CRITIC_DB

    def test_lyrics_metadata_block(self):
        html = '<div class="metadata_unit-info">Released March 3, 1986</div>'
        result = extract_year(html, SourceType.LYRICS_SITE)
        assert result.year == 1986
        assert result.confidence == CONFIDENCE_LYRICS

    def test_lyrics_newer_metadata_markup(self):
        html = '<div class="HeaderMetadata__Container-abc">Feb. 1, 1999</div>'
        result = extract_year(html, SourceType.LYRICS_SITE)
        assert result.year == 1999

    def test_structured_source_without_field_is_empty(self):
        result = extract_year("<p>Released in 1990</p>", SourceType.CRITIC_DB)
        assert result.year == 0


@pytest.mark.unit
class TestGeneric:
    def test_most_frequent_year_wins(self):
        html = "<body><p>1990 1985 1985 2001 1985 1990</p></body>"
        result = extract_year(html, SourceType.UNCLASSIFIED)
        assert result.year == 1985
        assert result.confidence == CONFIDENCE_GENERIC
        assert result.snippet == "Generic extraction: 1985 mentioned 3 times"

    def test_tie_goes_to_first_seen(self):
        html = "<body><p>1972 1968 1968 1972</p></body>"
        assert extract_year(html, SourceType.REVIEW_SITE).year == 1972

    def test_script_text_is_ignored(self):
        html = "<body><script>var y = 2003; var z = 2003;</script><p>Out in 1977.</p></body>"
        assert extract_year(html, SourceType.STREAMING_METADATA).year == 1977


@pytest.mark.unit
class TestPlausibility:
    def test_out_of_range_years_are_discarded(self):
        future = current_year() + 1
        html = f"<body><p>1850 1899 {future} {future}</p></body>"
        result = extract_year(html, SourceType.UNCLASSIFIED)
        assert result.year == 0
        assert result.confidence == 0.0

    def test_plausible_years_filters_range(self):
        assert plausible_years(f"1899 1900 2000 {current_year() + 5}") == [1900, 2000]

    def test_infobox_with_implausible_year_falls_back(self):
        html = """
        <table class="infobox"><tr><th>Released</th><td>1850</td></tr></table>
        <p>Published in 1911.</p>
        """
        result = extract_year(html, SourceType.ENCYCLOPEDIA)
        assert result.year == 1911

    @pytest.mark.parametrize("content", ["", "   ", "<html><body><div>", "<<<>>>"])
    def test_empty_or_malformed_content_never_raises(self, content):
        result = extract_year(content, SourceType.ENCYCLOPEDIA)
        assert result.year == 0
