"""wpreplace main application entry point."""

from cement import App

from wpreplace.cli.plugins.replace import WPReplaceController, wp_replace_hook
from wpreplace.core.variables import WPVar


class WPReplaceApp(App):
    class Meta:
        label = 'wpreplace'

        # close the application with the exit code passed to app.close()
        exit_on_close = True

        handlers = [WPReplaceController]

        hooks = [
            ('post_setup', wp_replace_hook),
        ]


def main():
    with WPReplaceApp() as app:
        try:
            app.run()
        except KeyboardInterrupt:
            print(f"\nwpreplace {WPVar.wp_version}: interrupted")
            app.exit_code = 130


if __name__ == '__main__':
    main()
