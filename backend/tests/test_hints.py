import pytest

from drawit.game.hints import mask_word, revealed_indices


@pytest.mark.parametrize('elapsed, expected', [(0, '___'), (29, '___'), (30, 'C__'), (75, 'C__')])
def test_short_word_gets_only_first_letter(elapsed, expected):
    assert mask_word('Cat', elapsed) == expected


def test_second_hint_reveals_middle_letter():
    assert mask_word('Tree', 59) == 'T___'
    assert mask_word('Tree', 60) == 'T_e_'


def test_spaces_and_punctuation_stay_visible():
    assert mask_word('Lost & Found', 0) == '____ & _____'
    assert mask_word('Hot-Air Balloon', 0) == '___-___ _______'


def test_first_hint_skips_leading_punctuation():
    assert revealed_indices('-abc', 30) == {1}


def test_empty_word():
    assert mask_word('', 80) == ''
    assert mask_word(None, 80) == ''
