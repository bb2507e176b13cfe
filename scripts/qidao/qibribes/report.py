from decimal import Decimal, ROUND_HALF_UP

from web3 import Web3

CENT = Decimal('0.01')


def to_fixed(dec):
    """Round a Decimal to 2 places for display."""
    return Decimal(dec).quantize(CENT, rounding=ROUND_HALF_UP)


def format_human_number(dec):
    """Format a Decimal with commas and 2 decimals."""
    return f"{to_fixed(dec):,.2f}"


def display_address(addr):
    if Web3.is_address(addr):
        return Web3.to_checksum_address(addr)
    return addr


def section(name):
    print(f"\n=== {name} ===\n")


def display_vote_totals(tally):
    section("Current vote totals")
    print(f"{'Choice'.ljust(30)} {'Votes'.rjust(18)} {'%'.rjust(8)}")
    print("-" * 58)
    for t in tally.totals:
        print(f"{t.label[:30].ljust(30)} {format_human_number(t.amount).rjust(18)} "
              f"{format_human_number(t.percentage).rjust(8)}")


def display_chain_totals(chain_totals):
    section("Vote totals by chain")
    for c in chain_totals:
        print(f"{c.chain.ljust(20)} {format_human_number(c.percentage).rjust(8)}%")


def display_bribes(bribes):
    section("Clawed back whale bribes")
    print(f"{format_human_number(bribes.clawed_back)} QI")

    section("Our bribes")
    print(f"{format_human_number(bribes.total_bribes)} QI")

    section("Bribes by voter")
    print(f"{'Voter'.ljust(42)} {'VP'.rjust(14)} {'Choice %'.rjust(9)} "
          f"{'Bribe'.rjust(12)} {'Whale adj'.rjust(12)} {'Total'.rjust(12)} {'QI/%'.rjust(10)}")
    print("-" * 117)
    rows = sorted(bribes.records.values(), key=lambda r: (-r.final_bribe, r.voter))
    for r in rows:
        flag = " 🐋" if r.is_whale else ""
        print(
            f"{display_address(r.voter).ljust(42)} "
            f"{format_human_number(r.vp).rjust(14)} "
            f"{format_human_number(r.choice_percentage).rjust(9)} "
            f"{format_human_number(r.raw_bribe).rjust(12)} "
            f"{format_human_number(r.whale_adjustment).rjust(12)} "
            f"{format_human_number(r.final_bribe).rjust(12)} "
            f"{format_human_number(r.rate_per_percent).rjust(10)}{flag}"
        )


def display_result(result):
    """Print every section the run produced. Aborted runs stop after the chains."""
    display_vote_totals(result.tally)
    display_chain_totals(result.chain_totals)
    if result.aborted:
        print(f"\n❌ {result.error}")
        return
    display_bribes(result.bribes)
    print()


def _vote_totals(tally):
    return [
        {'choice_id': t.choice_id, 'choice': t.label,
         'votes': str(t.amount), 'percentage': str(t.percentage)}
        for t in tally.totals
    ]


def _chain_totals(chain_totals):
    return [{'chain': c.chain, 'percentage': str(c.percentage)} for c in chain_totals]


def result_to_dict(result):
    """JSON-ready view of a run; Decimals become strings to keep precision."""
    out = {
        'state': result.state.value,
        'tracked_choice': result.tracked_choice,
        'total_vote': str(result.tally.total_vote),
        'vote_totals': _vote_totals(result.tally),
        'chain_totals': _chain_totals(result.chain_totals),
    }
    if result.aborted:
        out['error'] = str(result.error)
        return out

    b = result.bribes
    out.update({
        'bribe_pool': str(b.pool),
        'clawed_back': str(b.clawed_back),
        'total_bribes': str(b.total_bribes),
        'bribes': {
            voter: {
                'voter_vp': str(r.vp),
                'choice_perc': str(r.choice_percentage),
                'bribe_amount': str(r.raw_bribe),
                'whale_adjust': str(r.whale_adjustment),
                'total_bribe': str(r.final_bribe),
                'qi_per_percent': str(r.rate_per_percent),
                'whale': r.is_whale,
            }
            for voter, r in b.records.items()
        },
    })
    return out


def display_partial(pipeline):
    """Print whatever stages finished before a pipeline error."""
    if pipeline.tally is not None:
        display_vote_totals(pipeline.tally)
    if pipeline.chain_totals is not None:
        display_chain_totals(pipeline.chain_totals)


def partial_to_dict(pipeline, error):
    out = {'state': pipeline.state.value, 'error': str(error)}
    if pipeline.tally is not None:
        out['total_vote'] = str(pipeline.tally.total_vote)
        out['vote_totals'] = _vote_totals(pipeline.tally)
    if pipeline.chain_totals is not None:
        out['chain_totals'] = _chain_totals(pipeline.chain_totals)
    return out
