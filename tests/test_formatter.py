import dataclasses

import pytest

from catalog.services import formatter
from catalog.services.models import (
    AltName,
    CanonicalRecord,
    Fact,
    ImageRef,
    Money,
    MovieDetails,
    PersonDetails,
    RecordKind,
    SeriesDetails,
)

IMG = "https://image.tmdb.org/t/p/"


def test_extract_best_image_prefers_target_language_regardless_of_order():
    images = [
        {"file_path": "/ru.jpg", "iso_639_1": "ru"},
        {"file_path": "/en.jpg", "iso_639_1": "en"},
        {"file_path": "/fr.jpg", "iso_639_1": "fr"},
    ]
    expected = ImageRef(url=f"{IMG}original/ru.jpg", preview_url=f"{IMG}w500/ru.jpg")
    assert formatter.extract_best_image(images, "poster") == expected
    assert formatter.extract_best_image(list(reversed(images)), "poster") == expected


def test_extract_best_image_falls_back_to_english_then_first():
    english = formatter.extract_best_image(
        [{"file_path": "/fr.jpg", "iso_639_1": "fr"}, {"file_path": "/en.jpg", "iso_639_1": "en"}]
    )
    assert english.url == f"{IMG}original/en.jpg"

    first = formatter.extract_best_image(
        [{"file_path": "/fr.jpg", "iso_639_1": "fr"}, {"file_path": "/de.jpg", "iso_639_1": "de"}]
    )
    assert first.url == f"{IMG}original/fr.jpg"

    assert formatter.extract_best_image([]) is None
    assert formatter.extract_best_image(None) is None


def test_backdrop_preview_uses_wide_size():
    ref = formatter.extract_best_image([{"file_path": "/b.jpg", "iso_639_1": None}], "backdrop")
    assert ref.preview_url == f"{IMG}w1280/b.jpg"


def test_convert_credits_classifies_roles(movie_credits):
    persons = formatter.convert_credits_to_persons(movie_credits)
    assert [(p.name, p.profession_code) for p in persons] == [
        ("Леонардо ДиКаприо", "actor"),
        ("Джозеф Гордон-Левитт", "actor"),
        ("Кристофер Нолан", "director"),
        ("Кристофер Нолан", "writer"),
        ("Эмма Томас", "producer"),
    ]
    assert persons[0].photo == f"{IMG}w185/leo.jpg"
    assert persons[0].original_name == "Leonardo DiCaprio"
    assert persons[1].photo is None
    assert persons[2].profession == "режиссер"


def test_crew_precedence_job_then_writing_department_then_drop():
    credits = {
        "crew": [
            {"id": 1, "name": "Story Author", "job": "Story", "department": "Writing"},
            {"id": 2, "name": "Novelist", "job": "Novel", "department": "Crew"},
            {"id": 3, "name": "Credited Writer", "job": "Writer", "department": "Crew"},
            {"id": 4, "name": "Showrunner", "job": "Executive Producer", "department": "Production"},
        ]
    }
    persons = formatter.convert_credits_to_persons(credits)
    assert [(p.id, p.profession_code) for p in persons] == [(1, "writer"), (3, "writer"), (4, "producer")]


def test_cast_is_capped_at_twenty():
    credits = {"cast": [{"id": i, "name": f"Actor {i}"} for i in range(25)]}
    persons = formatter.convert_credits_to_persons(credits)
    assert len(persons) == 20
    assert persons[-1].name == "Actor 19"


def test_age_rating_tables():
    movie = {"results": [{"iso_3166_1": "US", "release_dates": [{"certification": "PG-13"}]}]}
    tv = {"results": [{"iso_3166_1": "US", "rating": "TV-MA"}]}
    assert formatter.extract_age_rating(movie) == 13
    assert formatter.extract_tv_age_rating(tv) == 17
    assert formatter.extract_mpaa_rating(movie) == "PG-13"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {},
        {"results": [{"iso_3166_1": "GB", "release_dates": [{"certification": "12A"}]}]},
        {"results": [{"iso_3166_1": "US", "release_dates": []}]},
        {"results": [{"iso_3166_1": "US", "release_dates": [{"certification": "Unrated"}]}]},
    ],
)
def test_age_rating_defaults_to_zero(payload):
    assert formatter.extract_age_rating(payload) == 0
    assert formatter.extract_tv_age_rating(payload) == 0


def test_extract_english_names_only_folds_initial_variants():
    names = ["Lynn A. Freedman", "Lynn Freedman", "Линн Фридман"]
    assert formatter.extract_english_names_only(names) == ["Lynn A. Freedman"]


def test_extract_english_names_only_keeps_source_order():
    names = ["  Leo DiCaprio ", "Леонардо", "Leonardo Wilhelm DiCaprio", "O'Brien, Jr. (actor)"]
    assert formatter.extract_english_names_only(names) == [
        "Leo DiCaprio",
        "Leonardo Wilhelm DiCaprio",
        "O'Brien, Jr. (actor)",
    ]


def test_substring_similarity_merges_short_names_known_limitation():
    # Containment matching merges "Lee" into "Bruce Lee" even if they are different people.
    assert formatter.are_similar_names("Lee", "Bruce Lee")
    assert formatter.extract_english_names_only(["Bruce Lee", "Lee"]) == ["Bruce Lee"]


def test_are_similar_names_is_case_and_space_insensitive():
    assert formatter.are_similar_names("bruce   LEE", "Bruce Lee")
    assert not formatter.are_similar_names("Tom Hardy", "Tom Hanks")


def test_combine_names_for_aliases():
    combined = formatter.combine_names_for_aliases(
        ["Леонардо ДиКаприо"],
        ["Leonardo Wilhelm DiCaprio", "", "leonardo wilhelm dicaprio", "Leo DiCaprio"],
    )
    assert combined == ["Леонардо ДиКаприо", "Leonardo Wilhelm DiCaprio", "Leo DiCaprio"]


def test_extract_known_for_titles_ranks_by_popularity_and_votes(person_credits):
    titles = formatter.extract_known_for_titles(person_credits)
    assert [t.id for t in titles] == [27205, 64682, 100]
    assert titles[0].kind is RecordKind.MOVIE
    assert titles[0].year == 2010
    assert titles[0].en_name == "Inception"
    assert titles[0].poster is None
    assert titles[2].kind is RecordKind.SERIES
    assert titles[2].year == 2001


def test_extract_known_for_titles_keeps_ten_and_source_order_on_ties():
    credits = {"cast": [{"id": i, "title": f"T{i}", "popularity": 5} for i in range(12)]}
    titles = formatter.extract_known_for_titles(credits)
    assert [t.id for t in titles] == list(range(10))
    assert formatter.extract_known_for_titles(None) == []


def test_process_facts_filters_and_strips_markup():
    facts = [
        Fact("<b>Финал</b> раскрыт", spoiler=True),
        Fact("   "),
        Fact("Съёмки &laquo;Начала&raquo; шли <i>6</i> месяцев&#8230;"),
        Fact("Tom &amp; Jerry &copy; 2020"),
        Fact("3"),
        Fact("4"),
        Fact("5"),
        Fact("6"),
    ]
    assert formatter.process_facts(facts) == [
        "Съёмки «Начала» шли 6 месяцев",
        "Tom & Jerry  2020",
        "3",
        "4",
        "5",
    ]


def test_parse_year_never_raises():
    assert formatter.parse_year("2010-07-15") == 2010
    assert formatter.parse_year("") == 0
    assert formatter.parse_year(None) == 0
    assert formatter.parse_year("soon") == 0


def test_convert_movie(movie_details, movie_credits, movie_images):
    record = formatter.convert_movie(movie_details, movie_credits, movie_images)
    assert record.kind is RecordKind.MOVIE
    assert record.name == "Начало"
    assert record.alternative_name == "Inception"
    assert record.en_name == "Inception"
    assert record.year == 2010
    assert record.premiere == "2010-07-15"
    assert record.genres == ("боевик", "фантастика")
    assert record.countries == ("США",)
    assert record.names == (AltName("Inception: The IMAX Experience", "IMAX"),)
    assert record.poster.url == f"{IMG}original/poster-ru.jpg"
    assert record.backdrop.url == f"{IMG}original/backdrop.jpg"
    assert record.logo.url == f"{IMG}original/logo-en.png"
    assert len(record.persons) == 5
    assert record.external_ids.imdb == "tt1375666"
    assert isinstance(record.details, MovieDetails)
    assert record.details.age_rating == 13
    assert record.details.rating_mpaa == "PG-13"
    assert record.details.length == 148
    assert record.details.budget == Money(160000000)


def test_convert_movie_falls_back_to_details_image_paths(movie_details):
    record = formatter.convert_movie(movie_details, None, {"posters": [], "logos": []})
    assert record.poster.url == f"{IMG}original/fallback-poster.jpg"
    assert record.backdrop.preview_url == f"{IMG}w1280/fallback-backdrop.jpg"
    assert record.logo is None
    assert record.persons == ()


def test_convert_movie_falls_back_when_chosen_image_has_no_path(movie_details):
    images = {"posters": [{"iso_639_1": "ru", "file_path": None}], "backdrops": [{"file_path": ""}]}
    record = formatter.convert_movie(movie_details, None, images)
    assert record.poster.url == f"{IMG}original/fallback-poster.jpg"
    assert record.backdrop.url == f"{IMG}original/fallback-backdrop.jpg"


def test_convert_movie_with_empty_payloads_defaults_everything():
    record = formatter.convert_movie({}, None, None)
    assert record.id == 0
    assert record.name == ""
    assert record.year == 0
    assert record.premiere is None
    assert record.genres == () and record.countries == () and record.names == ()
    assert record.poster is None and record.backdrop is None and record.logo is None
    assert record.details.budget is None


def test_convert_series(series_details):
    record = formatter.convert_series(series_details, {"cast": [], "crew": []}, {})
    assert record.kind is RecordKind.SERIES
    assert record.en_name == "Breaking Bad"
    assert record.year == 2008
    assert record.poster.url == f"{IMG}original/bb.jpg"
    assert isinstance(record.details, SeriesDetails)
    assert [s.number for s in record.details.seasons] == [1, 2]
    assert record.details.end_year == 2013
    assert record.details.age_rating == 17
    assert record.details.rating_mpaa == "TV-MA"
    assert record.details.total_length == 62 * 47
    assert record.details.networks == ("AMC",)
    assert record.external_ids.imdb == "tt0903747"
    assert record.names[0].name == "Breaking Bad: Во все тяжкие"


def test_convert_person(person_details, person_credits, person_images):
    record = formatter.convert_person(person_details, person_credits, person_images)
    assert record.kind is RecordKind.PERSON
    assert record.persons == ()
    assert record.year == 1974
    assert record.countries == ("USA",)
    assert record.rating.tmdb == 42.5
    assert record.poster.url == f"{IMG}original/leo-fr.jpg"
    assert record.backdrop is None
    assert record.description.startswith("Leonardo Wilhelm DiCaprio is an American actor.")
    assert record.short_description == "Leonardo Wilhelm DiCaprio is an American actor."
    assert record.external_ids.imdb == "nm0000138"
    assert isinstance(record.details, PersonDetails)
    assert record.details.also_known_as == ("Leonardo Wilhelm DiCaprio", "Leo DiCaprio")
    assert record.details.profession == "Актёр"
    assert record.details.hometown == "Los Angeles, California, USA"
    assert [t.id for t in record.details.known_for] == [27205, 64682, 100]


def test_converters_cover_every_kind():
    assert set(formatter.CONVERTERS) == set(RecordKind)


def test_canonical_record_rejects_mismatched_details():
    with pytest.raises(ValueError):
        CanonicalRecord(id=1, kind=RecordKind.PERSON, details=MovieDetails())


def test_records_store_collections_as_tuples():
    genres = ["драма"]
    record = CanonicalRecord(
        id=1,
        kind=RecordKind.SERIES,
        details=SeriesDetails(networks=["AMC"]),
        genres=genres,
    )
    genres.append("комедия")

    assert record.genres == ("драма",)
    assert record.details.networks == ("AMC",)
    assert PersonDetails(also_known_as=["Leo"]).also_known_as == ("Leo",)
    with pytest.raises(AttributeError):
        record.genres.append("комедия")
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.genres = ()
