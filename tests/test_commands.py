class TestBehaviorCommands:
    """flask behaviors ..."""

    def test_list_models(self, runner):
        result = runner.invoke(args=['behaviors', 'list'])

        assert result.exit_code == 0
        assert 'Article\tarticles\tlifecycle, deletable, sortable' in result.output
        assert 'Theme\tthemes\tunique-active' in result.output
        assert 'Tag\ttags\t-' in result.output

    def test_filter_by_capability(self, runner):
        result = runner.invoke(args=['behaviors', 'list', '--capability', 'unique-active'])

        assert result.exit_code == 0
        assert 'Theme' in result.output
        assert 'Article' not in result.output

    def test_rejects_unknown_capability(self, runner):
        result = runner.invoke(args=['behaviors', 'list', '-c', 'flying'])
        assert result.exit_code != 0
