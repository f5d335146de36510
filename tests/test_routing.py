"""
Tests for JSON Echo route keys and path patterns

Tests:
- Method prefix parsing and normalization
- Parameter syntaxes and pattern compilation
- Canonical route identifiers
- Matching concrete paths against patterns
"""

import pytest

from json_echo.core.routing import (
    DEFAULT_METHOD,
    PathPattern,
    RouteKeyError,
    Segment,
    compile_pattern,
    normalize_method,
    normalize_route_key,
    parse_route_key,
    route_identifier,
    split_path,
)


class TestSplitPath:
    """Test URL path splitting."""

    def test_basic_split(self):
        """Test splitting a simple path."""
        assert split_path('/api/users/1') == ['api', 'users', '1']

    def test_empty_segments_dropped(self):
        """Test that leading, trailing and doubled slashes are ignored."""
        assert split_path('//api//users/') == ['api', 'users']

    def test_root_path(self):
        """Test the root path has no segments."""
        assert split_path('/') == []

    def test_segments_percent_decoded(self):
        """Test segments are decoded after splitting, keeping %2F inside one."""
        assert split_path('/api/files/a%2Fb/x%20y') == ['api', 'files', 'a/b', 'x y']

    def test_query_string_dropped(self):
        """Test that query strings and fragments are ignored."""
        assert split_path('/api/users?page=2') == ['api', 'users']
        assert split_path('/api/users#top') == ['api', 'users']


class TestNormalizeMethod:
    """Test HTTP method normalization."""

    def test_case_insensitive(self):
        """Test methods are upper-cased."""
        assert normalize_method('post') == 'POST'
        assert normalize_method(' Delete ') == 'DELETE'

    def test_unknown_method(self):
        """Test unknown methods are rejected."""
        with pytest.raises(RouteKeyError):
            normalize_method('FETCH')

    def test_empty_method(self):
        """Test empty methods are rejected."""
        with pytest.raises(RouteKeyError):
            normalize_method('  ')


class TestParseRouteKey:
    """Test splitting the optional [METHOD] prefix."""

    def test_no_prefix(self):
        """Test a bare path has no method."""
        assert parse_route_key('/api/users') == (None, '/api/users')

    def test_prefix(self):
        """Test a bracketed method prefix."""
        assert parse_route_key('[post] /api/users') == ('POST', '/api/users')

    def test_prefix_without_space(self):
        """Test a prefix directly followed by the path."""
        assert parse_route_key('[PUT]/api/users') == ('PUT', '/api/users')

    def test_unterminated_prefix(self):
        """Test an unterminated prefix is rejected."""
        with pytest.raises(RouteKeyError, match='unterminated'):
            parse_route_key('[GET /api/users')


class TestCompilePattern:
    """Test path pattern compilation."""

    def test_literal_pattern(self):
        """Test a pattern without parameters."""
        pattern = compile_pattern('/api/users')

        assert pattern.is_literal
        assert pattern.param_names == ()
        assert str(pattern) == '/api/users'

    def test_colon_parameters(self):
        """Test :name parameters."""
        pattern = compile_pattern('/api/users/:userId/posts/:postId')

        assert pattern.param_names == ('userId', 'postId')
        assert not pattern.is_literal

    def test_brace_parameters(self):
        """Test {name} parameters render with the colon syntax."""
        pattern = compile_pattern('/api/users/{id}')

        assert pattern.param_names == ('id',)
        assert str(pattern) == '/api/users/:id'

    def test_equivalent_syntaxes(self):
        """Test both syntaxes and a trailing slash compile to equal patterns."""
        assert compile_pattern('/api/users/{id}') == compile_pattern('/api/users/:id/')

    def test_missing_leading_slash(self):
        """Test paths must start with '/'."""
        with pytest.raises(RouteKeyError, match="must start with '/'"):
            compile_pattern('api/users')

    def test_empty_parameter_name(self):
        """Test a bare ':' segment is rejected."""
        with pytest.raises(RouteKeyError, match='empty parameter'):
            compile_pattern('/api/users/:')

    def test_duplicate_parameter_name(self):
        """Test repeated parameter names are rejected."""
        with pytest.raises(RouteKeyError, match='appears twice'):
            compile_pattern('/api/:id/items/{id}')

    def test_specificity_prefers_early_literals(self):
        """Test a literal at the first differing position ranks higher."""
        literal_first = compile_pattern('/api/users/:id')
        param_first = compile_pattern('/api/:kind/:id')

        assert literal_first.specificity > param_first.specificity


class TestPathPatternMatch:
    """Test matching split paths against patterns."""

    def test_literal_match(self):
        """Test a literal pattern binds nothing."""
        pattern = compile_pattern('/api/users')

        assert pattern.match(['api', 'users']) == {}

    def test_parameter_binding(self):
        """Test parameters bind the raw segment text."""
        pattern = compile_pattern('/api/users/:id/posts/:postId')

        params = pattern.match(['api', 'users', '7', 'posts', 'abc'])

        assert params == {'id': '7', 'postId': 'abc'}

    def test_length_mismatch(self):
        """Test a different number of segments never matches."""
        pattern = compile_pattern('/api/users/:id')

        assert pattern.match(['api', 'users']) is None
        assert pattern.match(['api', 'users', '1', 'extra']) is None

    def test_literal_mismatch(self):
        """Test literal segments must be equal."""
        pattern = compile_pattern('/api/users/:id')

        assert pattern.match(['api', 'orders', '1']) is None

    def test_manual_pattern(self):
        """Test a hand-built pattern."""
        pattern = PathPattern(source='/x/:y', segments=(Segment('x'), Segment('y', is_param=True)))

        assert pattern.match(['x', 'z']) == {'y': 'z'}


class TestNormalizeRouteKey:
    """Test route key normalization into identities."""

    def test_default_method(self):
        """Test keys without a method default to GET."""
        method, pattern = normalize_route_key('/api/users')

        assert method == DEFAULT_METHOD == 'GET'
        assert str(pattern) == '/api/users'

    def test_method_field(self):
        """Test the route's method field is used when the key has none."""
        method, _ = normalize_route_key('/api/users', 'post')

        assert method == 'POST'

    def test_agreeing_methods(self):
        """Test a key prefix and method field that agree."""
        method, _ = normalize_route_key('[DELETE] /api/users/:id', 'delete')

        assert method == 'DELETE'

    def test_conflicting_methods(self):
        """Test a key prefix and method field that disagree."""
        with pytest.raises(RouteKeyError, match='conflicts'):
            normalize_route_key('[POST] /api/users', 'GET')

    def test_identifier(self):
        """Test the canonical identifier form."""
        method, pattern = normalize_route_key('[get] /api/users/{id}/')

        assert route_identifier(method, pattern) == '[GET] /api/users/:id'
