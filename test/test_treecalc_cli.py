import sys, os, io, unittest, contextlib
from unittest import mock
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'src'))
import treecalc, treecalc_cli


def RunSession(text, **kwargs):
    out = io.StringIO()
    session = treecalc_cli.Session(treecalc.CharSource(text), out, prompt='', **kwargs)
    failures = session.run()
    return out.getvalue().splitlines(), failures


class Test_Session(unittest.TestCase):
    def test_results(self):
        lines, failures = RunSession("2+3*4\n(2+3)*4\n")
        self.assertEqual(lines, [' = 14', ' = 20'])
        self.assertEqual(failures, 0)

    def test_three_outcomes(self):
        lines, failures = RunSession("2 3\n2+\n5/0\n7\n")
        self.assertEqual(lines, ['Syntax error', 'syntax error',
                                 'Error when computing: Division by zero', ' = 7'])
        self.assertEqual(failures, 3)

    def test_recovers_after_syntax_error(self):
        # The rest of the broken line must not leak into the next one.
        lines, failures = RunSession("1)+2+3\n4*5\n")
        self.assertEqual(lines, ['Syntax error', ' = 20'])

    def test_recovers_after_bad_character(self):
        lines, failures = RunSession("2+x+4\n1+1\n")
        self.assertEqual(lines, ['Syntax error', ' = 2'])

    def test_unmatched_paren(self):
        lines, failures = RunSession("(2+3\n")
        self.assertEqual(lines, ["Error when computing: ')' expected"])

    def test_domain_error(self):
        lines, failures = RunSession("171!\n170!\n")
        self.assertEqual(lines[0], 'Error when computing: Factorial of 171.0: larger than 170')
        self.assertEqual(lines[1], ' = 7.25742e+306')

    def test_blank_lines_are_silent(self):
        lines, failures = RunSession("\n  \n1\n")
        self.assertEqual(lines, [' = 1'])

    def test_quit(self):
        lines, failures = RunSession("1\nq\n2\n")
        self.assertEqual(lines, [' = 1'])

    def test_quit_word(self):
        lines, failures = RunSession("quit\n2\n")
        self.assertEqual(lines, [])

    def test_partial_last_line(self):
        lines, failures = RunSession("1\n2*3")
        self.assertEqual(lines, [' = 1', ' = 6'])

    def test_precision(self):
        lines, failures = RunSession("1/3\n", precision=3)
        self.assertEqual(lines, [' = 0.333'])

    def test_prompt(self):
        out = io.StringIO()
        treecalc_cli.Session(treecalc.CharSource("1\n"), out).run()
        self.assertEqual(out.getvalue(), '>  = 1\n> ')

    def test_bad_precision(self):
        self.assertRaises(ValueError,
                          lambda:treecalc_cli.Session(treecalc.CharSource(""), io.StringIO(), precision=0))

    def test_reads_stream_lazily(self):
        stream = io.StringIO("1+1\n2+2\n")
        session = treecalc_cli.Session(treecalc.CharSource(treecalc.ReadChars(stream)), io.StringIO())
        self.assertEqual(session.process_line(), treecalc_cli.Outcome('value', 2, None))
        self.assertEqual(stream.read(), '2+2\n')

    def test_lines_are_independent(self):
        lines, failures = RunSession("-5+3\n(2+3\n-5+3\n")
        self.assertEqual(lines[0], lines[2])

    def test_long_line_then_next(self):
        lines, failures = RunSession('+'.join(['1']*3000) + "\n2+2\n")
        self.assertEqual(lines, [' = 3000', ' = 4'])
        self.assertEqual(failures, 0)

    def test_prefix_factorial(self):
        lines, failures = RunSession("!3\n3!\n")
        self.assertEqual(lines, ['Syntax error', ' = 6'])


class Test_FormatNumber(unittest.TestCase):
    def test_integer(self):
        self.assertEqual(treecalc_cli.FormatNumber(14.0, 6), '14')

    def test_fraction(self):
        self.assertEqual(treecalc_cli.FormatNumber(0.1+0.2, 6), '0.3')

    def test_large(self):
        self.assertEqual(treecalc_cli.FormatNumber(1234567.0, 6), '1.23457e+06')

    def test_special(self):
        self.assertEqual(treecalc_cli.FormatNumber(float('inf'), 6), 'inf')
        self.assertEqual(treecalc_cli.FormatNumber(float('-inf'), 6), '-inf')
        self.assertEqual(treecalc_cli.FormatNumber(float('nan'), 6), 'nan')


class Test_Main(unittest.TestCase):
    def _main(self, argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            status = treecalc_cli.main(argv)
        return status, out.getvalue()

    def test_expression(self):
        self.assertEqual(self._main(['2^10']), (0, ' = 1024\n'))

    def test_expression_error(self):
        self.assertEqual(self._main(['1/0']), (1, 'Error when computing: Division by zero\n'))

    def test_expression_syntax_error(self):
        self.assertEqual(self._main(['1+)']), (1, 'Syntax error\n'))

    def test_expression_precision(self):
        self.assertEqual(self._main(['--precision', '2', '2/3']), (0, ' = 0.67\n'))

    def test_interactive(self):
        with mock.patch('sys.stdin', io.StringIO("1+1\n")):
            self.assertEqual(self._main(['--prompt', '']), (0, ' = 2\n\n'))

    def test_interactive_failure_status(self):
        with mock.patch('sys.stdin', io.StringIO("1/0\n2\n")):
            status, output = self._main(['--prompt', ''])
        self.assertEqual(status, 1)
        self.assertEqual(output, 'Error when computing: Division by zero\n = 2\n\n')


if __name__=='__main__':
    unittest.main()
