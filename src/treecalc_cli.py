# An interactive calculator on top of treecalc.
import argparse, collections, logging, math, sys
import treecalc

logger = logging.getLogger(__name__)

default_prompt = '> '
default_precision = 6


def FormatNumber(value, precision):
    """!
    @brief Format a float the way a C++ stream with default flags does.
    """
    if math.isnan(value):
        return 'nan'
    if math.isinf(value):
        return 'inf' if value > 0 else '-inf'
    return '%.*g' % (precision, value)


class Outcome(collections.namedtuple('Outcome', ['kind', 'value', 'message'])):
    """!
    @brief What happened to one line of input.
    kind is one of 'value', 'syntax', 'compute', 'blank', 'quit', 'eof'.
    """
    def render(self, precision=default_precision):
        if self.kind == 'value':
            return ' = %s' % (FormatNumber(self.value, precision),)
        if self.kind == 'syntax':
            return self.message
        if self.kind == 'compute':
            return 'Error when computing: %s' % (self.message,)
        return None


class Session:
    """!
    @brief Read lines of arithmetic from a character source and print their values.
    """
    def __init__(self, source, out, prompt=None, precision=None):
        """!
        @param[in] source	A treecalc.CharSource.
        @param[in] out		A text stream for prompts and results.
        @param[in] prompt	Optionally, override the prompt text.
        @param[in] precision	Optionally, override the number of significant digits printed.
        """
        if prompt is None:
            prompt = default_prompt
        if precision is None:
            precision = default_precision
        if precision < 1:
            raise ValueError('precision must be at least 1')
        self._source = source
        self._out = out
        self.prompt = prompt
        self.precision = precision

    def run(self):
        """!
        @brief Process lines until 'q' or end of input.
        @return The number of lines that failed.
        """
        failures = 0
        while 1:
            self._out.write(self.prompt)
            self._out.flush()
            outcome = self.process_line()
            if outcome.kind in ('quit', 'eof'):
                break
            text = outcome.render(self.precision)
            if text is not None:
                self._out.write(text + '\n')
            if outcome.kind in ('syntax', 'compute'):
                failures += 1
            if self._source.at_eof:
                break
        return failures

    def process_line(self):
        """!
        @brief Read, build and evaluate one line.
        @return An Outcome.
        """
        source = self._source
        tree = treecalc.SyntaxTree()
        first = True
        try:
            for tok in treecalc.Lexer(source).line_tokens():
                if first:
                    first = False
                    if tok.kind == treecalc.QUIT:
                        source.skip_line()
                        return Outcome('quit', None, None)
                    if tok.kind == treecalc.END:
                        if source.at_eof:
                            return Outcome('eof', None, None)
                        return Outcome('blank', None, None)
                if tok.kind == treecalc.END:
                    break
                tree.insert(treecalc.MakeNode(tok))
            tree.finish()
        except treecalc.StructuralError as exc:
            logger.debug('syntax error: %s', exc)
            source.skip_line()
            return Outcome('syntax', None, 'Syntax error')

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug('tree:\n%s', tree.dump())
        try:
            value = tree.evaluate()
        except treecalc.ArityError as exc:
            logger.debug('arity error: %s', exc)
            return Outcome('syntax', None, 'syntax error')
        except treecalc.EvaluationError as exc:
            logger.debug('evaluation error: %s', exc)
            return Outcome('compute', None, str(exc))
        return Outcome('value', value, None)


def main(argv=None):
    ap = argparse.ArgumentParser(description='Evaluate arithmetic: + - * / ^ ! ( ) and numbers.')
    ap.add_argument('expression', nargs='?', action='store',
                    help='evaluate this expression and exit, instead of reading lines from stdin')
    ap.add_argument('--precision', type=int, default=default_precision,
                    help='significant digits in results (default %(default)s)')
    ap.add_argument('--prompt', default=default_prompt,
                    help='prompt printed before each line')
    ap.add_argument('--debug', action='store_true', help='log tree construction to stderr')
    args = ap.parse_args(argv)
    if args.precision < 1:
        ap.error('--precision must be at least 1')

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format='%(name)s: %(message)s')

    if args.expression is not None:
        session = Session(treecalc.CharSource(args.expression), sys.stdout, prompt='',
                          precision=args.precision)
        outcome = session.process_line()
        text = outcome.render(args.precision)
        if text is not None:
            print(text)
        return 0 if outcome.kind in ('value', 'blank', 'eof', 'quit') else 1

    session = Session(treecalc.CharSource(treecalc.ReadChars(sys.stdin)), sys.stdout,
                      prompt=args.prompt, precision=args.precision)
    failures = session.run()
    print()
    return 0 if failures == 0 else 1


if __name__=='__main__':
    sys.exit(main())
