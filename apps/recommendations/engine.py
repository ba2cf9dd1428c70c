import logging
import re
from decimal import Decimal, ROUND_HALF_UP

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Skill-overlap matching between workers and jobs.

    score = 100 * |W & J| / max(|W|, |J|) rounded half up, skill names compared
    case-insensitively. Dividing by the larger set penalises skill sets that
    are much broader or narrower than the job's.
    """

    @staticmethod
    def normalize_string(s):
        """Normalize strings for comparison."""
        return re.sub(r'\s+', ' ', (s or '').lower().strip())

    @staticmethod
    def skill_set(skills):
        """Names from a list of ``{name, ...}`` dicts or plain strings."""
        names = set()
        for skill in skills or []:
            name = skill.get('name') if isinstance(skill, dict) else skill
            name = MatchEngine.normalize_string(name)
            if name:
                names.add(name)
        return names

    @staticmethod
    def similarity(worker_skills, job_skills):
        """
        Integer percentage, halves rounded up (12.5 -> 13). Callers must have
        excluded zero-overlap pairs already.
        """
        common = worker_skills & job_skills
        score = Decimal(100 * len(common)) / max(len(worker_skills), len(job_skills))
        return int(score.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @staticmethod
    def recommend(worker_skills, candidate_jobs, limit=None):
        """
        Rank ``candidate_jobs`` for a worker. Returns ``[(job, score)]`` best first,
        newest first among equal scores. Jobs sharing no skill with the worker
        (including jobs with no skills at all) never appear.
        """
        worker_set = MatchEngine.skill_set(worker_skills)
        scored = []
        for job in candidate_jobs:
            job_set = MatchEngine.skill_set(job.required_skills)
            # Excluded before scoring, so an empty result means no overlap at all
            if not worker_set & job_set:
                continue
            scored.append((job, MatchEngine.similarity(worker_set, job_set)))
        scored.sort(key=lambda pair: pair[0].created_at, reverse=True)
        scored.sort(key=lambda pair: pair[1], reverse=True)
        if limit is not None:
            scored = scored[:limit]
        logger.debug(f"Matched {len(scored)} of {len(candidate_jobs)} candidate jobs")
        return scored

    @staticmethod
    def recommend_workers(job_skills, workers, limit=None):
        """
        The same metric from the employer's side: ``[(worker, score)]`` best
        first, higher rated workers first among equal scores.
        """
        job_set = MatchEngine.skill_set(job_skills)
        scored = []
        for worker in workers:
            worker_set = MatchEngine.skill_set(worker.skills)
            if worker_set & job_set:
                scored.append((worker, MatchEngine.similarity(worker_set, job_set)))
        scored.sort(key=lambda pair: (pair[1], pair[0].rating_average), reverse=True)
        if limit is not None:
            scored = scored[:limit]
        return scored
