from tusks import Scope

alpha = Scope("alpha", linkable=True, help="alpha commands")
inner = alpha.scope("inner")


@alpha.tusk
def ping():
    return 3
