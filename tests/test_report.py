from buddhabrot import RunConfig, format_report
from buddhabrot.stats import stats_from_counts


def test_report_lists_summary_histogram_and_limits(sample_counts):
    config = RunConfig(width=4, height=2, max_iterations=50)
    report = format_report(config, stats_from_counts(sample_counts))
    lines = report.splitlines()

    assert lines[0] == "Iterations: 50"
    assert lines[1] == "Dimensions: 4x2px"
    assert lines[2] == "Mean count: 3.67"
    assert lines[3] == "Max count: 10"
    assert lines[4] == "Escaping points: 6 (75.00%)"
    histogram_lines = lines[6:26]
    assert len(histogram_lines) == 20
    assert histogram_lines[0].split()[0] == "1"
    assert histogram_lines[-1].split()[-1] == "100.00"
    assert "Percentile limits:" in lines
    assert lines[-1] == " 100% 10"


def test_report_without_percentiles(sample_counts):
    config = RunConfig(width=4, height=2, max_iterations=50)
    report = format_report(config, stats_from_counts(sample_counts), show_percentiles=False)
    assert "Percentile limits:" not in report
