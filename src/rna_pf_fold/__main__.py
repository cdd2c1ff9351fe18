import sys

from rna_pf_fold.scripts.pf_fold import main


if __name__ == '__main__':
    sys.exit(main())
