from termcolor import colored

RULE = "-" * 79


def header():
    print("{:^6} | {:^14} | {:^14} | {:^9} | {:^10} | {:^10}".format(
        "Step", "Start Time", "End Time", "Samples", "Staged", "Status"))
    print(colored(RULE))


def step_row(k, start_time, end_time, n_samples, n_staged, accepted):
    status = colored("ACCEPTED", "green") if accepted else colored("ROLLBACK", "red")
    print("{:^6d} | {:^14.6e} | {:^14.6e} | {:^9d} | {:^10d} | {:^10}".format(
        k, float(start_time), float(end_time), n_samples, n_staged, status))


def consolidate_row(n_steps, end_time):
    print(colored(
        "  consolidated {} step(s) up to t = {:.6e}".format(n_steps, float(end_time)), "cyan"))


def footer(dense_output, computation_time):
    print(colored(RULE))
    BOLD = "\033[1m"
    RESET = "\033[0m"
    print("------------------------------- " + BOLD + "DENSE OUTPUT" + RESET + " ------------------------------")
    if dense_output.is_empty():
        print("Span: empty")
    else:
        print("Span: [{:.6e}, {:.6e}]".format(
            float(dense_output.get_start_time()), float(dense_output.get_end_time())))
        print("Dimensions: ", dense_output.get_dimensions())
        print("Committed steps: ", dense_output.get_step_count())
    print("Total Computation Time: ", computation_time)
