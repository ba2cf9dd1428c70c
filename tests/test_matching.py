from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from apps.recommendations.engine import MatchEngine

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def job(name, skills, age_days=0):
    return SimpleNamespace(
        title=name,
        required_skills=[{'name': skill, 'level': None} for skill in skills],
        created_at=NOW - timedelta(days=age_days),
    )


def worker(name, skills, rating=0.0):
    return SimpleNamespace(username=name, skills=[{'name': s} for s in skills], rating_average=rating)


def titles(matches):
    return [(j.title, score) for j, score in matches]


def test_score_divides_overlap_by_larger_set():
    jobs = [job('A', ['Python', 'Java']), job('B', ['Ruby'])]
    assert titles(MatchEngine.recommend(['python', 'aws'], jobs)) == [('A', 50)]


def test_comparison_ignores_case_and_spacing():
    matches = MatchEngine.recommend([{'name': '  Machine   Learning '}], [job('ML', ['machine learning'])])
    assert titles(matches) == [('ML', 100)]


def test_jobs_without_skills_never_match():
    assert MatchEngine.recommend(['python'], [job('Empty', [])]) == []


def test_worker_without_skills_gets_nothing():
    assert MatchEngine.recommend([], [job('A', ['Python'])]) == []


def test_sorted_by_score_then_newest_first():
    jobs = [
        job('old-full', ['Python'], age_days=5),
        job('half', ['Python', 'Go'], age_days=0),
        job('new-full', ['Python'], age_days=1),
    ]
    assert titles(MatchEngine.recommend(['Python'], jobs)) == [
        ('new-full', 100), ('old-full', 100), ('half', 50),
    ]


def test_limit_applies_after_ranking():
    jobs = [job('low', ['Python', 'Go', 'Rust'], age_days=0), job('high', ['Python'], age_days=3)]
    assert titles(MatchEngine.recommend(['Python'], jobs, limit=1)) == [('high', 100)]


def test_workers_ranked_by_score_then_rating():
    workers = [
        worker('generalist', ['Python', 'Go', 'Rust', 'C'], rating=5.0),
        worker('newcomer', ['Python'], rating=3.0),
        worker('veteran', ['Python'], rating=4.5),
        worker('designer', ['Figma'], rating=5.0),
    ]
    matches = MatchEngine.recommend_workers([{'name': 'Python'}], workers)
    assert [(w.username, score) for w, score in matches] == [
        ('veteran', 100), ('newcomer', 100), ('generalist', 25),
    ]


def test_half_percent_scores_round_up():
    skills = [f'skill-{n}' for n in range(8)]
    jobs = [job('one-of-eight', ['skill-0']), job('five-of-eight', skills[:5], age_days=1)]
    assert titles(MatchEngine.recommend(skills, jobs)) == [('five-of-eight', 63), ('one-of-eight', 13)]
