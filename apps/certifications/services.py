import hashlib
import logging
import time

from apps.users import services as user_services
from apps.users.models import User
from apps.users.serializers import is_blockchain_address
from apps.users.skills import find_skill, normalize_skill_name
from core.exceptions import DomainError, GatewayTimeoutError, NotFoundError, ValidationError
from core.results import ServiceResult
from .gateway import get_certification_gateway

logger = logging.getLogger(__name__)


def generate_hash(user_id, content, skill_name, timestamp=None):
    """SHA-256 hex of the evidence content, the user id, the skill name and a millisecond timestamp."""
    if not content or not normalize_skill_name(skill_name):
        raise ValidationError('File content and skill name are required')
    if timestamp is None:
        timestamp = int(time.time() * 1000)
    digest = hashlib.sha256(f"{content}{user_id}{skill_name}{timestamp}".encode('utf-8')).hexdigest()
    return {'certificate_hash': digest, 'skill_name': skill_name, 'timestamp': timestamp}


def _address_for(user, address=None):
    address = address or user.blockchain_address
    if not address or not is_blockchain_address(address):
        raise ValidationError('Valid blockchain address is required')
    return address


def _issue(gateway, user, skill_name, certificate_hash, address):
    outcome = gateway.issue(skill_name, certificate_hash, address)
    if not outcome.is_issued:
        logger.warning(f"Issuer refused certification of '{skill_name}' for user {user.pk}: {outcome.status}")
        raise ValidationError('Certification was not issued', status=outcome.status)
    result = user_services.certify_skill(user.pk, skill_name, certificate_hash, outcome.tx_id)
    if not result.success:
        raise result.error
    return outcome, result.data


def certify(user, skill_name, certificate_hash, address=None):
    try:
        if not normalize_skill_name(skill_name) or not certificate_hash:
            raise ValidationError('Skill name and certificate hash are required')
        address = _address_for(user, address)
        outcome, skill = _issue(get_certification_gateway(), user, skill_name, certificate_hash, address)
    except DomainError as e:
        return ServiceResult.fail(e)
    return ServiceResult.ok({'transaction_hash': outcome.tx_id, 'status': outcome.status, 'skill': skill},
                            'Skill certified successfully')


def batch_certify(user, certifications):
    """
    Certify several skills, reporting per item. A failing item does not stop
    the rest; a timeout does, since later items would wait on the same issuer.
    """
    if not certifications:
        return ServiceResult.fail(ValidationError('Certifications array is required'))
    try:
        gateway = get_certification_gateway()
    except DomainError as e:
        return ServiceResult.fail(e)

    results = []
    for item in certifications:
        skill_name = item.get('skill_name')
        certificate_hash = item.get('certificate_hash')
        if not skill_name or not certificate_hash:
            results.append({'skill_name': skill_name, 'success': False, 'error': 'Missing required fields'})
            continue
        try:
            address = _address_for(user, item.get('address'))
            outcome, _ = _issue(gateway, user, skill_name, certificate_hash, address)
        except GatewayTimeoutError as e:
            results.append({'skill_name': skill_name, 'success': False, 'error': e.message})
            break
        except DomainError as e:
            results.append({'skill_name': skill_name, 'success': False, 'error': e.message})
            continue
        results.append({'skill_name': skill_name, 'success': True, 'transaction_hash': outcome.tx_id})
    logger.info(f"Batch certification for user {user.pk}: "
                f"{sum(1 for r in results if r['success'])}/{len(certifications)} issued")
    return ServiceResult.ok(results, 'Batch certification completed')


def verify(user_id, skill_name):
    """
    Look a certification up with the issuer, falling back to what is stored
    on the profile when the issuer is unconfigured, unreachable or silent.
    """
    try:
        user = User.objects.get(pk=user_id, is_active=True)
    except User.DoesNotExist:
        return ServiceResult.fail(NotFoundError('User not found'))

    answer = {
        'user_id': user.pk,
        'skill_name': skill_name,
        'address': user.blockchain_address,
        'is_certified': False,
        'certificate_hash': '',
        'tx_id': None,
        'timestamp': None,
        'source': None,
    }
    if user.blockchain_address:
        try:
            recorded = get_certification_gateway().lookup(user.blockchain_address, skill_name)
        except DomainError as e:
            logger.warning(f"Issuer lookup unavailable for user {user.pk}, using stored data: {e.message}")
            recorded = None
        if recorded:
            answer.update(is_certified=True, certificate_hash=recorded['certificate_hash'],
                          timestamp=recorded.get('timestamp'), source='issuer')
            return ServiceResult.ok(answer)

    skill = find_skill(user.skills, skill_name)
    if skill and skill.get('certified') and skill.get('tx_id'):
        answer.update(is_certified=True, certificate_hash=skill['certificate_hash'],
                      tx_id=skill['tx_id'], source='profile')
    return ServiceResult.ok(answer)


def user_certifications(user_id):
    try:
        user = User.objects.get(pk=user_id, is_active=True)
    except User.DoesNotExist:
        return ServiceResult.fail(NotFoundError('User not found'))
    return ServiceResult.ok([
        {
            'skill_name': skill['name'],
            'certificate_hash': skill.get('certificate_hash'),
            'tx_id': skill.get('tx_id'),
            'certified': True,
        }
        for skill in user.skills if skill.get('certified') and skill.get('tx_id')
    ])
