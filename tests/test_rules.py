import pytest

from factories import make_rule
from motor_avaliacao.models import PeriodType, RecoveryStrategy
from motor_avaliacao.rules import (
    ConfigurationError, RuleRegistry, ensure_valid_rule, is_valid_rule, resolve_rule, validate_rule,
)


def test_exact_grade_rule_beats_course_default():
    default = make_rule(id='r-curso')
    exact = make_rule(id='r-serie', education_grade_id='9')
    assert resolve_rule([default, exact], 'C1', '9') is exact
    assert resolve_rule([default, exact], 'C1', '8') is default
    assert resolve_rule([default, exact], 'C1') is default


def test_no_rule_for_course_returns_none():
    assert resolve_rule([make_rule()], 'C2', '1') is None
    assert resolve_rule([], 'C1') is None


def test_grade_only_rule_is_not_a_course_default():
    exact = make_rule(education_grade_id='9')
    assert resolve_rule([exact], 'C1', '8') is None


def test_inactive_rules_never_resolve():
    inactive = make_rule(id='r-old', education_grade_id='9', active=False)
    default = make_rule(id='r-curso')
    assert resolve_rule([inactive, default], 'C1', '9') is default


def test_invalid_rule_is_skipped(caplog):
    broken = make_rule(id='r-broken', education_grade_id='9', periods_per_year=3)
    default = make_rule(id='r-curso')
    assert resolve_rule([broken, default], 'C1', '9') is default
    assert 'r-broken' in caplog.text


def test_tie_resolves_to_lowest_id_regardless_of_order():
    a = make_rule(id='r-a')
    b = make_rule(id='r-b')
    assert resolve_rule([b, a], 'C1') is a
    assert resolve_rule([a, b], 'C1') is a


def test_ids_compared_as_text():
    rule = make_rule(course_id=7, education_grade_id=9)
    assert resolve_rule([rule], '7', '9') is rule


def test_course_id_required():
    with pytest.raises(ValueError):
        resolve_rule([make_rule()], None)
    with pytest.raises(ValueError):
        resolve_rule([make_rule()], '  ')


@pytest.mark.parametrize('period_type, count', [
    (PeriodType.BIMESTRE, 4), (PeriodType.TRIMESTRE, 3), (PeriodType.SEMESTRE, 2), (PeriodType.ANUAL, 1),
])
def test_canonical_period_counts_are_valid(period_type, count):
    assert is_valid_rule(make_rule(period_type=period_type, periods_per_year=count))


def test_validate_rule_lists_every_problem():
    rule = make_rule(periods_per_year=2, min_approval_grade=11, min_attendance_percent=-5,
                     period_weights=(1, 0))
    problems = validate_rule(rule)
    assert len(problems) == 4
    assert any('periods_per_year' in p for p in problems)
    assert any('min_approval_grade' in p for p in problems)
    assert any('min_attendance_percent' in p for p in problems)


def test_unknown_recovery_strategy_is_invalid():
    assert not is_valid_rule(make_rule(recovery_strategy='Sorteio'))
    assert is_valid_rule(make_rule(recovery_strategy=RecoveryStrategy.AVERAGE))


def test_ensure_valid_rule_raises_configuration_error():
    with pytest.raises(ConfigurationError) as exc:
        ensure_valid_rule(make_rule(id='r9', period_type=PeriodType.SEMESTRE, periods_per_year=4))
    assert exc.value.rule_id == 'r9'
    assert exc.value.problems


def test_registry_rejects_invalid_rule_on_write():
    registry = RuleRegistry([make_rule(id='r-curso')])
    with pytest.raises(ConfigurationError):
        registry.register(make_rule(id='r-bad', period_type=PeriodType.TRIMESTRE, periods_per_year=4))
    assert [r.id for r in registry.rules] == ['r-curso']


def test_registry_resolves_with_precedence():
    registry = RuleRegistry()
    registry.register(make_rule(id='r-curso'))
    exact = registry.register(make_rule(id='r-serie', education_grade_id='5'))
    assert registry.resolve('C1', '5') is exact
    assert registry.resolve('C1', '4').id == 'r-curso'
