"""Pure operations on a user's ordered skill list."""
from core.constants import SKILL_LEVEL_CHOICES, choice_values
from core.exceptions import ValidationError

SKILL_LEVELS = choice_values(SKILL_LEVEL_CHOICES)
CERTIFICATION_FIELDS = ('certified', 'certificate_hash', 'tx_id')


def normalize_skill_name(name):
    return ' '.join((name or '').split()).lower()


def replace_skills(current, submitted):
    """
    Replace the skill list with ``submitted`` while keeping certification data
    for skills that survive the edit. Names must be unique within a user.
    """
    existing = {normalize_skill_name(skill['name']): skill for skill in current}
    seen = set()
    result = []
    for item in submitted:
        name = ' '.join((item.get('name') or '').split())
        key = normalize_skill_name(name)
        if not key:
            raise ValidationError('Skill name is required.')
        if key in seen:
            raise ValidationError(f"Duplicate skill '{name}'.", skill=name)
        level = item.get('level')
        if level is not None and level not in SKILL_LEVELS:
            raise ValidationError(f"Invalid level '{level}' for skill '{name}'.", skill=name)
        seen.add(key)
        skill = {'name': name, 'level': level, 'certified': False, 'certificate_hash': None, 'tx_id': None}
        previous = existing.get(key)
        if previous:
            for field in CERTIFICATION_FIELDS:
                skill[field] = previous.get(field, skill[field])
        result.append(skill)
    return result


def certify_skill(skills, skill_name, certificate_hash, tx_id):
    """
    Mark ``skill_name`` certified, storing the hash and transaction id exactly
    as the issuer returned them. Unknown skills are appended.
    """
    if not normalize_skill_name(skill_name):
        raise ValidationError('Skill name is required.')
    if not certificate_hash or not tx_id:
        raise ValidationError('Certificate hash and transaction id are required.')
    key = normalize_skill_name(skill_name)
    result = [dict(skill) for skill in skills]
    for skill in result:
        if normalize_skill_name(skill['name']) == key:
            skill.update(certified=True, certificate_hash=certificate_hash, tx_id=tx_id)
            return result
    result.append({
        'name': ' '.join(skill_name.split()),
        'level': None,
        'certified': True,
        'certificate_hash': certificate_hash,
        'tx_id': tx_id,
    })
    return result


def find_skill(skills, skill_name):
    key = normalize_skill_name(skill_name)
    for skill in skills:
        if normalize_skill_name(skill['name']) == key:
            return skill
    return None
